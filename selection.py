"""
Column selection state.

SelectionMap is the structure the combine engine consumes: stored file name
-> ordered list of chosen columns. CombineSession wraps it together with the
loaded files, so a caller keeps one explicit state object per user session
instead of shared globals.
"""
from collections import OrderedDict
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from structure_analyzer import ColumnDescriptor


class ColumnChoice(BaseModel):
    """
    One selected column. Cells are looked up by name; index is kept for display.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    index: int = Field(default=0, alias="indice")
    name: str = Field(alias="nome")


class StoredFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    original_name: str = Field(alias="originalName")


class SelectionMap:
    """Ordered mapping of stored file name to the columns chosen from it."""

    def __init__(self, choices: Optional[Dict[str, List[ColumnChoice]]] = None):
        self._choices: "OrderedDict[str, List[ColumnChoice]]" = OrderedDict()
        for file_name, columns in (choices or {}).items():
            for column in columns:
                self.select(file_name, column)

    @classmethod
    def from_payload(cls, payload: Dict[str, List[Any]]) -> "SelectionMap":
        """Build a map from a request body, accepting dicts or ColumnChoice items."""
        return cls({
            file_name: [ColumnChoice.model_validate(column) for column in columns]
            for file_name, columns in (payload or {}).items()
        })

    def select(self, file_name: str, column: ColumnChoice) -> None:
        columns = self._choices.setdefault(file_name, [])
        if not any(existing.name == column.name for existing in columns):
            columns.append(column)

    def deselect(self, file_name: str, column_name: str) -> None:
        columns = [c for c in self._choices.get(file_name, []) if c.name != column_name]
        if columns:
            self._choices[file_name] = columns
        else:
            self._choices.pop(file_name, None)

    def clear_file(self, file_name: str) -> None:
        self._choices.pop(file_name, None)

    def columns_for(self, file_name: str) -> List[ColumnChoice]:
        return list(self._choices.get(file_name, []))

    def is_selected(self, file_name: str, column_name: str) -> bool:
        return any(c.name == column_name for c in self._choices.get(file_name, []))

    def total_selected(self) -> int:
        return sum(len(columns) for columns in self._choices.values())

    def file_names(self) -> List[str]:
        return list(self._choices.keys())

    def to_payload(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            file_name: [column.model_dump(by_alias=True) for column in columns]
            for file_name, columns in self._choices.items()
        }

    def __contains__(self, file_name: str) -> bool:
        return bool(self._choices.get(file_name))

    def __iter__(self) -> Iterator[str]:
        return iter(self._choices)

    def __len__(self) -> int:
        return len(self._choices)

    def __bool__(self) -> bool:
        return self.total_selected() > 0


class CombineSession:
    """
    State held by a client between upload and export.

    Attributes:
        files: Loaded files, in upload order (this order drives combination)
        analyses: Column descriptors per stored file name
        selection: Chosen columns
        renames: Final column names keyed by "<fileName>_<column>"
    """

    def __init__(self):
        self.files: List[StoredFile] = []
        self.analyses: Dict[str, List[ColumnDescriptor]] = {}
        self.selection = SelectionMap()
        self.renames: Dict[str, str] = {}

    def add_file(self, file_name: str, original_name: str) -> StoredFile:
        stored = StoredFile(file_name=file_name, original_name=original_name)
        if all(f.file_name != file_name for f in self.files):
            self.files.append(stored)
        return stored

    def remove_file(self, file_name: str) -> None:
        self.files = [f for f in self.files if f.file_name != file_name]
        self.analyses.pop(file_name, None)
        self.selection.clear_file(file_name)
        prefix = f"{file_name}_"
        self.renames = {key: value for key, value in self.renames.items() if not key.startswith(prefix)}

    def set_analysis(self, file_name: str, columns: List[ColumnDescriptor]) -> None:
        # Re-analysis may change the structure, so earlier choices are dropped
        self.analyses[file_name] = columns
        self.selection.clear_file(file_name)

    def choose(self, file_name: str, column_name: str) -> ColumnChoice:
        """Select a column by name, taking its index from the file's analysis."""
        index = next(
            (c.index for c in self.analyses.get(file_name, []) if c.name == column_name),
            0,
        )
        choice = ColumnChoice(index=index, name=column_name)
        self.selection.select(file_name, choice)
        return choice

    def rename(self, file_name: str, column_name: str, final_name: str) -> None:
        self.renames[f"{file_name}_{column_name}"] = final_name

    def files_payload(self) -> List[Dict[str, str]]:
        return [f.model_dump(by_alias=True) for f in self.files]

    def preview_payload(self, limit: int) -> Dict[str, Any]:
        return {
            "planilhas": self.files_payload(),
            "colunasEscolhidas": self.selection.to_payload(),
            "limiteLinha": limit,
        }

    def combine_payload(self, final_name: Optional[str], configuration: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        configuration = dict(configuration or {})
        if self.renames:
            configuration.setdefault("renomearColunas", dict(self.renames))
        return {
            "planilhas": self.files_payload(),
            "colunasEscolhidas": self.selection.to_payload(),
            "nomeArquivoFinal": final_name,
            "configuracoes": configuration,
        }
