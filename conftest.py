"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and points the upload
and export directories at per-test temporary folders.
"""
import os
import sys

import pandas as pd
import pytest

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from config import settings  # noqa: E402


@pytest.fixture(autouse=True)
def storage_dirs(tmp_path, monkeypatch):
    """
    Fixture isolating uploads and exports per test.

    Returns:
        tuple: (upload directory, export directory)
    """
    upload_dir = tmp_path / "uploads"
    export_dir = tmp_path / "exports"
    upload_dir.mkdir()
    export_dir.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(upload_dir))
    monkeypatch.setattr(settings, "EXPORT_DIR", str(export_dir))
    return str(upload_dir), str(export_dir)


@pytest.fixture
def upload_dir(storage_dirs):
    return storage_dirs[0]


@pytest.fixture
def export_dir(storage_dirs):
    return storage_dirs[1]


@pytest.fixture
def people_df():
    """
    Fixture providing a small table shaped like the reader's output.

    Returns:
        pandas.DataFrame: string cells, "" for missing values
    """
    return pd.DataFrame({
        'id': ['1', '2', '3'],
        'name': ['Alice', 'Bob', 'Carol'],
        'amount': ['10', '20', ''],
    }, dtype=object)


@pytest.fixture
def write_text_file(tmp_path):
    """Fixture returning a helper that writes a text file and returns its path."""
    def _write(name, content):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def write_xlsx_file(tmp_path):
    """Fixture returning a helper that writes a DataFrame to an .xlsx file and returns its path."""
    def _write(name, df):
        path = tmp_path / name
        df.to_excel(path, index=False, engine="openpyxl")
        return str(path)
    return _write
