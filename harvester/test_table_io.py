"""
Tests for CSV reading/writing and image file naming.
"""

import csv

import pytest

from harvester.errors import InputTableError
from harvester.files import LOGO, file_safe_name, image_path
from harvester.table_io import read_input_table, write_output_table


def test_read_trims_and_defaults_base_name(write_csv):
    path = write_csv(" BaseName , URL ,Notes\n acme , https://acme.example ,NA\n,https://b.example,00123\n")

    rows = read_input_table(path)

    assert rows == [
        {"BaseName": "acme", "URL": "https://acme.example", "Notes": "NA"},
        {"BaseName": "untitled", "URL": "https://b.example", "Notes": "00123"},
    ]


def test_missing_required_column(write_csv):
    path = write_csv("Name,URL\nacme,https://acme.example\n")

    with pytest.raises(InputTableError, match="BaseName"):
        read_input_table(path)


def test_missing_file(tmp_path):
    with pytest.raises(InputTableError):
        read_input_table(tmp_path / "nope.csv")


def test_write_quotes_every_cell(tmp_path):
    path = tmp_path / "out.csv"
    rows = [{"BaseName": "acme", "ScrapedData": '{"title": "A, B"}'}]

    write_output_table(rows, ["BaseName", "ScrapedData"], path)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == '"BaseName","ScrapedData"'
    with open(path, newline="", encoding="utf-8") as f:
        assert list(csv.DictReader(f)) == rows


def test_file_safe_name():
    assert file_safe_name('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"
    assert file_safe_name(" acme ") == "acme"


def test_image_paths(tmp_path):
    shot = image_path(tmp_path, "images", "acme")
    logo = image_path(tmp_path, "images", "acme", kind=LOGO)

    assert shot.relative_path == "images/acme.png"
    assert shot.full_path == tmp_path / "images" / "acme.png"
    assert logo.relative_path == "images/acme-1.png"
