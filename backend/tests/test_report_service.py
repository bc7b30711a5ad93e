"""
Tests unitaires des exports CSV et PDF (rendu octet par octet).
"""

import csv
import io
import re

import pytest

from campusguard.services.report_service import (
    PAGE_WIDTH,
    build_csv,
    build_simple_table_pdf,
    compute_column_widths,
    escape_pdf_text,
    wrap_by_words,
)


# --- CSV ---

def parse_csv(content: str):
    assert content.startswith("\ufeff")
    return list(csv.reader(io.StringIO(content[1:])))


def test_csv_relecture_avec_durcissement_des_formules():
    content = build_csv(["Nom", "Valeur"], [["=SUM(A1)", 'a,b"c'], ["+33 6", "@cmd"]])

    assert parse_csv(content) == [
        ["Nom", "Valeur"],
        ["'=SUM(A1)", 'a,b"c'],
        ["'+33 6", "'@cmd"],
    ]


def test_csv_guillemets_doubles_et_sans_saut_de_ligne_final():
    content = build_csv(["A"], [['a,b"c']])

    assert content == '\ufeffA\n"a,b""c"'


def test_csv_espaces_fusionnes_et_valeurs_vides():
    """Les retours à la ligne internes deviennent des espaces, None devient vide."""
    content = build_csv(["A", "B"], [["  ligne 1\nligne 2 ", None]])

    assert parse_csv(content) == [["A", "B"], ["ligne 1 ligne 2", ""]]


def test_csv_valeur_negative_durcie():
    assert parse_csv(build_csv(["T"], [["-4.5"]]))[1] == ["'-4.5"]


def test_csv_sans_lignes():
    assert build_csv(["A", "B"], []) == "\ufeffA,B"


# --- Mise en page ---

def test_decoupage_par_mots():
    assert wrap_by_words("un deux trois quatre", 9) == ["un deux", "trois", "quatre"]


def test_decoupage_mot_trop_long():
    assert wrap_by_words("abcdefghij", 4) == ["abcd", "efgh", "ij"]


def test_decoupage_texte_vide():
    assert wrap_by_words("   ", 10) == [""]


def test_largeurs_de_colonnes_couvrent_le_tableau():
    widths = compute_column_widths(["Date", "Salle", "Commentaire"], [["02/03", "B12", "x" * 80]], 786)

    assert sum(widths) == 786
    assert all(width >= 43 for width in widths)
    assert widths[2] > widths[0]


def test_largeurs_sans_colonnes():
    assert compute_column_widths([], [], 786) == []


def test_echappement_pdf():
    assert escape_pdf_text("a(b)c\\") == "a\\(b\\)c\\\\"
    assert escape_pdf_text("é") == "\\351"
    assert escape_pdf_text("€") == "?"


# --- PDF ---

def page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type /Page\b", pdf))


def assert_valid_pdf(pdf: bytes):
    assert pdf.startswith(b"%PDF-1.4")
    assert b"/Root 1 0 R" in pdf
    assert pdf.rstrip().endswith(b"%%EOF")
    pages = page_count(pdf)
    assert pages >= 1
    assert pdf.count(b"/Font << /F1 3 0 R /F2 4 0 R >>") == pages
    return pages


def test_pdf_sans_lignes():
    pdf = build_simple_table_pdf("Relevés", ["Date", "Salle"], [])

    assert assert_valid_pdf(pdf) == 1
    assert b"Page 1 sur 1" in pdf


def test_pdf_une_colonne():
    pdf = build_simple_table_pdf("Export", ["Unique"], [["valeur"]], subtitle_lines=["Sous-titre"])

    assert assert_valid_pdf(pdf) == 1
    assert b"(valeur)" in pdf


def test_pdf_volumineux_pagine():
    rows = [[str(i), "texte " * 30, "B12"] for i in range(5000)]

    pdf = build_simple_table_pdf("Relevés de télémétrie", ["#", "Commentaire", "Salle"], rows)

    pages = assert_valid_pdf(pdf)
    assert pages > 1
    assert f"Page {pages} sur {pages}".encode() in pdf
    # La ligne d'en-tête est répétée sur chaque page
    assert pdf.count(b"(Commentaire)") == pages


def test_pdf_format_paysage():
    pdf = build_simple_table_pdf("T", ["A"], [["1"]])
    assert f"/MediaBox [0 0 {PAGE_WIDTH} 595]".encode() in pdf


@pytest.mark.parametrize("title", ["Titre (avec parenthèses)", "Antislash \\ final"])
def test_pdf_titre_echappe(title):
    pdf = build_simple_table_pdf(title, ["A"], [])
    assert escape_pdf_text(title).encode("latin-1") in pdf
