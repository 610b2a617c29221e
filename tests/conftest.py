from pathlib import Path

import pytest

from core.data import parse_table_csv, reload_reference_table
from core.settings import SAMPLE_TABLE_PATH

SMALL_TABLE_TEXT = ",10,20,30\n900,1,2,3\n950,4,5,6"


@pytest.fixture(autouse=True)
def _fresh_table_cache():
    reload_reference_table()
    yield
    reload_reference_table()


@pytest.fixture
def small_table():
    return parse_table_csv(SMALL_TABLE_TEXT)


@pytest.fixture
def sample_table():
    return parse_table_csv(Path(SAMPLE_TABLE_PATH).read_text(encoding="utf-8"))


@pytest.fixture
def table_file(tmp_path):
    def _write(text: str, name: str = "table.csv") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
