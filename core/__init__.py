#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sqlite2pg Core Package
Type mapping, identifier quoting, value encoding and the migration pipeline.

Submodules are imported directly (e.g. ``from core.migration import MigrationRunner``)
so that importing the package does not pull in psycopg2.
"""

__version__ = '1.0.0'
__description__ = 'sqlite2pg - single-run SQLite to PostgreSQL migrator'
