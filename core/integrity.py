#!/usr/bin/env python3
"""
Integrity Prechecker - structural validation of the SQLite source

Runs before anything touches the destination. A failed report means the
migration must not start.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from core.errors import IntegrityCheckError

logger = logging.getLogger(__name__)


@dataclass
class IntegrityReport:
    passed: bool = True
    anomalies: List[str] = field(default_factory=list)

    def fail(self, anomaly: str):
        self.passed = False
        self.anomalies.append(anomaly)
        logger.error(anomaly)

    def __bool__(self) -> bool:
        return self.passed


def check_source_integrity(source) -> IntegrityReport:
    """
    Run integrity_check, quick_check and foreign_key_check plus a trivial
    catalog read against the source adapter.
    """
    logger.info("Running SQLite database integrity check...")
    report = IntegrityReport()

    try:
        integrity = source.integrity_check()
        if integrity != ['ok']:
            report.fail(f"Database integrity check failed: {integrity}")

        quick = source.quick_check()
        if quick != ['ok']:
            report.fail(f"Quick check failed: {quick}")

        fk_violations = source.foreign_key_check()
        if fk_violations:
            report.fail(f"Foreign key check failed: {len(fk_violations)} violation(s): {fk_violations}")

        source.schema_object_count()
    except IntegrityCheckError as e:
        report.fail(f"Error during integrity check: {e}")

    if report.passed:
        logger.info("SQLite database integrity check passed")

    return report
