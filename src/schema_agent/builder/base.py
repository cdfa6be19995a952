from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List, Optional

from schema_agent.concepts import Dialect
from schema_agent.model import ColumnDef, SchemaModel


class ScriptAction(str, Enum):
    CREATE = "create"
    DROP = "drop"


class SchemaModelBuilder(ABC):
    @abstractmethod
    def build_model(self, merged_dir: Path, dialect: Dialect, schema: Optional[str] = None) -> SchemaModel: ...
    @abstractmethod
    def emit_script(self, model: SchemaModel, action: ScriptAction) -> List[str]: ...
    @abstractmethod
    def sql_type(self, column: ColumnDef, dialect: Dialect) -> str: ...
