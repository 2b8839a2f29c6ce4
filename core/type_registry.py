from enum import Enum
from typing import Dict, Tuple, Optional

class IRType(Enum):
    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE PRECISION"
    TEXT = "TEXT"
    BYTEA = "BYTEA"

    # Fallback
    UNKNOWN = "UNKNOWN"

class TypeRegistry:
    # Declared SQLite type keyword → IR type. Matching is exact on the
    # upper-cased, stripped declaration: 'VARCHAR(20)' or 'INT' are unknown.
    SOURCE_TO_IR: Dict[str, IRType] = {
        'INTEGER': IRType.INTEGER,
        'REAL': IRType.DOUBLE,
        'TEXT': IRType.TEXT,
        'BLOB': IRType.BYTEA,
    }

    # IR type → PostgreSQL column type
    IR_TO_TARGET: Dict[IRType, str] = {
        IRType.INTEGER: 'INTEGER',
        IRType.DOUBLE: 'DOUBLE PRECISION',
        IRType.TEXT: 'TEXT',
        IRType.BYTEA: 'BYTEA',
    }

    FALLBACK_TARGET = 'TEXT'

    @staticmethod
    def map_to_ir(source_type: Optional[str]) -> IRType:
        """Map a declared SQLite column type to an IR type"""
        key = (source_type or '').strip().upper()
        return TypeRegistry.SOURCE_TO_IR.get(key, IRType.UNKNOWN)

    @staticmethod
    def map_from_ir(ir_type: IRType) -> str:
        """Map IR type to PostgreSQL type"""
        return TypeRegistry.IR_TO_TARGET.get(ir_type, TypeRegistry.FALLBACK_TARGET)

    @staticmethod
    def to_postgres(source_type: Optional[str]) -> str:
        """Translate a declared SQLite type straight to its PostgreSQL column type"""
        return TypeRegistry.map_from_ir(TypeRegistry.map_to_ir(source_type))

    @staticmethod
    def is_lossy_conversion(source_type: Optional[str]) -> Tuple[bool, Optional[str]]:
        """Check if the declared type only survives through the TEXT fallback"""
        if TypeRegistry.map_to_ir(source_type) != IRType.UNKNOWN:
            return (False, None)

        declared = (source_type or '').strip() or '<none>'
        return (True, f"Unrecognized SQLite type '{declared}' stored as {TypeRegistry.FALLBACK_TARGET}")
