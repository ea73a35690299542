from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from combine_engine import CombineOptions
from config import settings
from export_writer import CsvOptions
from selection import ColumnChoice, StoredFile


class AnalyzeRequest(BaseModel):
    """
    Schema for a structure analysis request.

    Attributes:
        files: Stored files to analyze, each with its stored and original name
    """
    files: List[StoredFile] = Field(default_factory=list)


class CombineSettings(BaseModel):
    """
    Options for combination and export, as sent by the client.

    Attributes:
        include_origin: Add an __origin__ column with the source file name
        trim_strings: Strip leading/trailing whitespace from text cells
        empty_replacement: Value written for empty cells
        rename: Final column names keyed by "<fileName>_<column>"
        format: Export format, xlsx or csv
        formats: Export once per listed format instead of format
        separator: CSV field separator
        line_terminator: CSV line terminator
        include_header: Write the CSV header row
        sheet_name: Worksheet name for xlsx exports
    """
    model_config = ConfigDict(populate_by_name=True)

    include_origin: bool = Field(default=False, alias="incluirOrigem")
    trim_strings: bool = Field(default=False, alias="removerEspacos")
    empty_replacement: Optional[str] = Field(default="", alias="substituirVazios")
    rename: Dict[str, str] = Field(default_factory=dict, alias="renomearColunas")
    format: str = Field(default="xlsx", alias="formato")
    formats: Optional[List[str]] = Field(default=None, alias="formatos")
    separator: str = Field(default=",", alias="separador", min_length=1)
    line_terminator: str = Field(default="\n", alias="quebrarLinha", min_length=1)
    include_header: bool = Field(default=True, alias="incluirCabecalho")
    sheet_name: Optional[str] = Field(default=None, alias="nomeAba")

    def combine_options(self) -> CombineOptions:
        return CombineOptions(
            include_origin=self.include_origin,
            trim_strings=self.trim_strings,
            empty_replacement=self.empty_replacement or "",
            rename=dict(self.rename),
        )

    def csv_options(self) -> CsvOptions:
        return CsvOptions(
            separator=self.separator,
            line_terminator=self.line_terminator,
            include_header=self.include_header,
        )


class PreviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spreadsheets: List[StoredFile] = Field(alias="planilhas")
    selection: Dict[str, List[ColumnChoice]] = Field(alias="colunasEscolhidas")
    limit: int = Field(default=settings.PREVIEW_DEFAULT_LIMIT, alias="limiteLinha", ge=0)


class CombineRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spreadsheets: List[StoredFile] = Field(default_factory=list, alias="planilhas")
    selection: Dict[str, List[ColumnChoice]] = Field(default_factory=dict, alias="colunasEscolhidas")
    final_name: Optional[str] = Field(default=None, alias="nomeArquivoFinal")
    settings: CombineSettings = Field(default_factory=CombineSettings, alias="configuracoes")
