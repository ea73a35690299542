import pandas as pd
import pytest
from openpyxl import Workbook

from spreadsheet_reader import detect_separator, is_supported, read_sample, read_table
from utils.errors import EmptyTable, FileNotFound, UnsupportedFormat


class TestDetectSeparator:
    """
    Tests for separator detection on delimited text.
    """

    @pytest.mark.parametrize(
        "content, expected",
        [
            ("a,b,c\n1,2,3\n", ","),
            ("a;b;c\n1;2;3\n", ";"),
            ("a\tb\tc\n1\t2\t3\n", "\t"),
            ("a|b|c\n1|2|3\n", "|"),
            ("a;b,c\n1;2,3\n", ","),
            ("single\nvalue\n", ","),
            ("", ","),
        ],
        ids=["comma", "semicolon", "tab", "pipe", "tie-keeps-first", "no-separator", "empty-file"]
    )
    def test_detects_most_frequent_candidate(self, write_text_file, content, expected):
        path = write_text_file("data.csv", content)
        assert detect_separator(path) == expected

    def test_only_first_three_lines_are_counted(self, write_text_file):
        content = "a;b\n1;2\n3;4\n" + "x,y,z,w,v\n" * 5
        path = write_text_file("data.csv", content)
        assert detect_separator(path) == ";"

    def test_missing_file_falls_back_to_comma(self, tmp_path):
        assert detect_separator(str(tmp_path / "missing.csv")) == ","


class TestReadCsv:
    """
    Tests for reading delimited text files.
    """

    def test_reads_every_field_as_string(self, write_text_file):
        path = write_text_file("data.csv", "id,name,amount\n1,Alice,10\n2,Bob,20\n")
        df = read_table(path, "data.csv")

        assert list(df.columns) == ["id", "name", "amount"]
        assert df.to_dict(orient="records") == [
            {"id": "1", "name": "Alice", "amount": "10"},
            {"id": "2", "name": "Bob", "amount": "20"},
        ]

    def test_skips_empty_lines(self, write_text_file):
        path = write_text_file("data.csv", "a;b\n1;2\n\n3;4\n\n")
        df = read_table(path, "data.csv")
        assert len(df) == 2

    def test_short_rows_get_empty_strings(self, write_text_file):
        path = write_text_file("data.txt", "a|b|c\n1|2\n")
        df = read_table(path, "data.txt")
        assert df.iloc[0].tolist() == ["1", "2", ""]

    def test_quoted_fields_keep_separator_and_newline(self, write_text_file):
        path = write_text_file("data.csv", 'name,note\n"Doe, John","line1\nline2"\n')
        df = read_table(path, "data.csv")
        assert df.iloc[0]["name"] == "Doe, John"
        assert df.iloc[0]["note"] == "line1\nline2"

    def test_extra_fields_do_not_shift_columns(self, write_text_file):
        path = write_text_file("data.csv", "a,b\n1,2,3\n4,5\n")
        df = read_table(path, "data.csv")
        assert df.to_dict(orient="records") == [{"a": "1", "b": "2"}, {"a": "4", "b": "5"}]

    def test_invalid_utf8_is_read_with_replacement_characters(self, tmp_path):
        path = tmp_path / "latin1.csv"
        path.write_bytes(b"nome;cidade\nJo\xe3o;S\xe3o Paulo\n")

        df = read_table(str(path), "latin1.csv")

        assert list(df.columns) == ["nome", "cidade"]
        assert df.iloc[0]["nome"] == "Jo\ufffdo"
        assert df.iloc[0]["cidade"] == "S\ufffdo Paulo"

    def test_byte_order_mark_is_not_part_of_header(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffid,name\n1,Alice\n".encode("utf-8"))
        df = read_table(str(path), "bom.csv")
        assert list(df.columns) == ["id", "name"]

    def test_sample_stops_after_max_rows(self, write_text_file):
        rows = "\n".join(f"{i},{i * 2}" for i in range(50))
        path = write_text_file("data.csv", "a,b\n" + rows + "\n")
        df = read_sample(path, "data.csv", 20)
        assert len(df) == 20
        assert df.iloc[-1]["a"] == "19"

    @pytest.mark.parametrize(
        "content",
        ["", "a,b,c\n"],
        ids=["empty-file", "header-only"]
    )
    def test_empty_content_raises_empty_table(self, write_text_file, content):
        path = write_text_file("data.csv", content)
        with pytest.raises(EmptyTable):
            read_table(path, "data.csv")


class TestReadExcel:
    """
    Tests for reading Excel workbooks.
    """

    def test_reads_first_sheet_with_header_row(self, tmp_path):
        path = tmp_path / "book.xlsx"
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame({"id": [1, 2], "name": ["Alice", "Bob"]}).to_excel(writer, sheet_name="First", index=False)
            pd.DataFrame({"other": ["x"]}).to_excel(writer, sheet_name="Second", index=False)

        df = read_table(str(path), "book.xlsx")

        assert list(df.columns) == ["id", "name"]
        assert df.to_dict(orient="records") == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]

    def test_missing_cells_default_to_empty_string(self, write_xlsx_file):
        path = write_xlsx_file("book.xlsx", pd.DataFrame({"a": ["x", None], "b": [None, "y"]}))
        df = read_table(path, "book.xlsx")
        assert df.to_dict(orient="records") == [{"a": "x", "b": ""}, {"a": "", "b": "y"}]

    def test_integer_column_with_blank_keeps_integers(self, tmp_path):
        path = tmp_path / "ids.xlsx"
        workbook = Workbook()
        sheet = workbook.active
        for row in (["id", "name"], [1, "a"], [None, "b"], [3, "c"]):
            sheet.append(row)
        workbook.save(path)

        df = read_table(str(path), "ids.xlsx")

        assert df["id"].tolist() == [1, "", 3]

    def test_sample_is_capped(self, write_xlsx_file):
        path = write_xlsx_file("book.xlsx", pd.DataFrame({"n": list(range(100))}))
        df = read_sample(path, "book.xlsx", 20)
        assert len(df) == 20

    def test_non_string_headers_become_strings(self, write_xlsx_file):
        path = write_xlsx_file("book.xlsx", pd.DataFrame({2024: [1], "name": ["a"]}))
        df = read_table(path, "book.xlsx")
        assert list(df.columns) == ["2024", "name"]

    def test_header_only_sheet_raises_empty_table(self, write_xlsx_file):
        path = write_xlsx_file("book.xlsx", pd.DataFrame(columns=["a", "b"]))
        with pytest.raises(EmptyTable):
            read_table(path, "book.xlsx")

    def test_corrupt_workbook_raises_unsupported_format(self, write_text_file):
        path = write_text_file("broken.xlsx", "this is not a workbook")
        with pytest.raises(UnsupportedFormat):
            read_table(path, "broken.xlsx")


class TestErrors:
    """
    Tests for format dispatch and missing files.
    """

    @pytest.mark.parametrize(
        "name, expected",
        [("a.csv", True), ("a.TXT", True), ("a.xlsx", True), ("a.xls", True), ("a.pdf", False), ("noext", False)],
        ids=["csv", "txt-upper", "xlsx", "xls", "pdf", "no-extension"]
    )
    def test_is_supported(self, name, expected):
        assert is_supported(name) is expected

    def test_unsupported_extension(self, write_text_file):
        path = write_text_file("data.json", "{}")
        with pytest.raises(UnsupportedFormat):
            read_table(path, "data.json")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFound):
            read_table(str(tmp_path / "gone.csv"), "gone.csv")

    def test_format_follows_original_name_not_stored_name(self, write_text_file):
        path = write_text_file("stored_123_abc", "a,b\n1,2\n")
        df = read_table(path, "original.csv")
        assert len(df) == 1
