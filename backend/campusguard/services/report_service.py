"""
Génération des exports tabulaires : CSV (durci contre l'injection de formules)
et PDF minimal écrit octet par octet, sans moteur de rendu externe.

PDF :
- A4 paysage (842 × 595 points), polices Type1 Helvetica (F1) et Helvetica-Bold (F2)
- largeurs de colonnes calculées une fois (pondération en-tête / valeurs échantillonnées)
- retour à la ligne par mots, coupure forcée des mots trop longs
- pagination avec répétition de la ligne d'en-tête, une ligne sur deux grisée
- graphe d'objets PDF 1.4 + table xref + trailer
"""

import csv
import io
import math
import re
from dataclasses import dataclass
from typing import List, Sequence

CSV_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r", "\n")

PAGE_WIDTH = 842
PAGE_HEIGHT = 595
MARGIN_LEFT = 28
MARGIN_RIGHT = 28
MARGIN_TOP = 26
MARGIN_BOTTOM = 24
FOOTER_HEIGHT = 18
CONTENT_WIDTH = PAGE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT

TABLE_CELL_PADDING_X = 4
TABLE_CELL_PADDING_TOP = 5
TABLE_CELL_PADDING_BOTTOM = 4
TABLE_FONT_SIZE = 8.6
TABLE_FONT_LEADING = 10.4
TABLE_HEADER_FONT_SIZE = 9.2
TABLE_HEADER_LEADING = 11.4

TITLE_FONT_SIZE = 15.5
TITLE_LEADING = 18.5
SUBTITLE_FONT_SIZE = 9.6
SUBTITLE_LEADING = 12.4

# Largeur moyenne d'un glyphe Helvetica, en fraction de la taille de police
CHAR_WIDTH_RATIO = 0.52
SAMPLE_ROWS = 500

_WHITESPACE_RE = re.compile(r"\s+")


def _to_cell(value) -> str:
    """Valeur → texte sur une ligne (espaces consécutifs fusionnés)."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def _row_cell(row: Sequence, index: int) -> str:
    return _to_cell(row[index]) if index < len(row) else ""


# ============================================================
# CSV
# ============================================================

def _harden_csv_cell(value: str) -> str:
    """Préfixe d'une apostrophe les cellules interprétables comme formule par un tableur."""
    if value.startswith(CSV_FORMULA_PREFIXES):
        return "'" + value
    return value


def build_csv(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """
    Génère un CSV séparé par des virgules, préfixé du BOM UTF-8 (compatibilité Excel).
    Les cellules contenant virgule, guillemet ou saut de ligne sont entourées de
    guillemets, les guillemets internes doublés.
    """
    output = io.StringIO()
    writer = csv.writer(output, delimiter=",", lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    for row in [headers, *rows]:
        writer.writerow([_harden_csv_cell(_to_cell(value)) for value in row])

    content = output.getvalue()
    if content.endswith("\n"):
        content = content[:-1]  # pas de saut de ligne final
    return "\ufeff" + content


# ============================================================
# PDF : mise en page
# ============================================================

def _fmt(value: float) -> str:
    """Nombre PDF : deux décimales maximum, sans zéros superflus."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def escape_pdf_text(value: str) -> str:
    """
    Échappe une chaîne littérale PDF : \\ ( ) précédés d'un antislash, octets de
    contrôle et non-ASCII en octal, caractères au-delà de 255 remplacés par '?'.
    """
    out = []
    for char in value:
        code = ord(char)
        if char in ("\\", "(", ")"):
            out.append("\\" + char)
        elif code < 32 or code > 126:
            out.append(f"\\{code:03o}" if code <= 255 else "?")
        else:
            out.append(char)
    return "".join(out)


def estimate_char_capacity(width: float, font_size: float) -> int:
    """Nombre de caractères tenant dans une cellule de cette largeur."""
    usable = max(8, width - TABLE_CELL_PADDING_X * 2)
    return max(1, math.floor(usable / (font_size * CHAR_WIDTH_RATIO)))


def wrap_by_words(value: str, max_chars: int) -> List[str]:
    """Découpe sur les espaces ; un mot plus large que la colonne est coupé en morceaux."""
    text = _to_cell(value)
    if not text:
        return [""]
    if len(text) <= max_chars:
        return [text]

    lines: List[str] = []
    current = ""
    for word in text.split(" "):
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_chars:
            current = candidate
            continue
        if current:
            lines.append(current)
            current = ""

        if len(word) <= max_chars:
            current = word
            continue

        for start in range(0, len(word), max_chars):
            part = word[start:start + max_chars]
            if len(part) == max_chars:
                lines.append(part)
            else:
                current = part

    if current:
        lines.append(current)
    return lines or [""]


def compute_column_widths(
    headers: Sequence[str], rows: Sequence[Sequence[str]], table_width: float
) -> List[int]:
    """
    Répartit la largeur du tableau entre les colonnes.

    Poids = max(poids de l'en-tête borné à [8, 36], plus longue valeur des 500
    premières lignes bornée à [4, 42]). Chaque colonne reçoit une largeur minimale,
    le reste est distribué au prorata des poids ; l'arrondi est rattrapé unité par
    unité en partant de la première colonne.
    """
    sample = rows[:SAMPLE_ROWS]
    weights = []
    for index, header in enumerate(headers):
        header_weight = max(8, min(36, len(_to_cell(header)) + 4))
        value_weight = 4
        for row in sample:
            value_weight = max(value_weight, max(4, min(42, len(_row_cell(row, index)))))
        weights.append(max(header_weight, value_weight))

    min_col_width = max(34, math.floor(table_width * 0.055))
    extra_space = max(0, table_width - min_col_width * len(headers))
    sum_weights = sum(weights) or 1

    rounded = [math.floor(min_col_width + extra_space * weight / sum_weights) for weight in weights]
    diff = math.floor(table_width - sum(rounded))
    index = 0
    while diff > 0 and rounded:
        rounded[index % len(rounded)] += 1
        diff -= 1
        index += 1
    return rounded


@dataclass
class _PreparedRow:
    cells: List[List[str]]
    height: float
    index: int


def _prepare_rows(rows: Sequence[Sequence[str]], column_widths: List[int]) -> List[_PreparedRow]:
    capacities = [estimate_char_capacity(width, TABLE_FONT_SIZE) for width in column_widths]
    prepared = []
    for row_index, row in enumerate(rows):
        cells = [wrap_by_words(_row_cell(row, col), capacities[col]) for col in range(len(column_widths))]
        max_lines = max([len(lines) for lines in cells] + [1])
        height = TABLE_CELL_PADDING_TOP + TABLE_CELL_PADDING_BOTTOM + max_lines * TABLE_FONT_LEADING
        prepared.append(_PreparedRow(cells=cells, height=height, index=row_index))
    return prepared


def _paginate(rows: List[_PreparedRow], header_height: float, available_height: float) -> List[List[_PreparedRow]]:
    """Une ligne reste sur la page tant que hauteur utilisée + hauteur de ligne ≤ hauteur disponible."""
    pages: List[List[_PreparedRow]] = []
    current: List[_PreparedRow] = []
    used = header_height
    for row in rows:
        if used + row.height > available_height and current:
            pages.append(current)
            current = []
            used = header_height
        current.append(row)
        used += row.height
    if current:
        pages.append(current)
    return pages or [[]]


# ============================================================
# PDF : flux de contenu
# ============================================================

def _draw_rect(commands, x, y, width, height, fill_gray=None, stroke_gray=None, stroke_width=0.4):
    if fill_gray is not None:
        commands.append(f"{_fmt(fill_gray)} g")
        commands.append(f"{_fmt(x)} {_fmt(y)} {_fmt(width)} {_fmt(height)} re f")
    if stroke_gray is not None:
        commands.append(f"{_fmt(stroke_gray)} G")
        commands.append(f"{_fmt(stroke_width)} w")
        commands.append(f"{_fmt(x)} {_fmt(y)} {_fmt(width)} {_fmt(height)} re S")


def _draw_text_lines(commands, lines, x, y_top, font, font_size, leading, gray=0.0):
    if not lines:
        return
    commands.append(f"{_fmt(gray)} g")
    commands.append("BT")
    commands.append(f"/{font} {_fmt(font_size)} Tf")
    commands.append(f"{_fmt(leading)} TL")
    commands.append(f"{_fmt(x)} {_fmt(y_top - font_size)} Td")
    for index, line in enumerate(lines):
        if index > 0:
            commands.append("T*")
        commands.append(f"({escape_pdf_text(line)}) Tj")
    commands.append("ET")


def _draw_hline(commands, y, gray, width):
    commands.append(f"{_fmt(gray)} G")
    commands.append(f"{_fmt(width)} w")
    commands.append(f"{_fmt(MARGIN_LEFT)} {_fmt(y)} m {_fmt(MARGIN_LEFT + CONTENT_WIDTH)} {_fmt(y)} l S")


def _header_block_height(title_lines: List[str], subtitle_lines: List[str]) -> float:
    subtitle = len(subtitle_lines) * SUBTITLE_LEADING + 8 if subtitle_lines else 0
    return len(title_lines) * TITLE_LEADING + subtitle


def _build_page_content(
    page_rows: List[_PreparedRow],
    page_index: int,
    page_count: int,
    title_lines: List[str],
    subtitle_lines: List[str],
    header_cells: List[List[str]],
    header_height: float,
    column_widths: List[int],
) -> str:
    commands: List[str] = []
    footer_y = MARGIN_BOTTOM + 4

    # Titre + sous-titres
    _draw_rect(commands, MARGIN_LEFT, PAGE_HEIGHT - MARGIN_TOP - 3, 4, 18, fill_gray=0.2)
    _draw_text_lines(
        commands, title_lines, MARGIN_LEFT + 10, PAGE_HEIGHT - MARGIN_TOP,
        font="F2", font_size=TITLE_FONT_SIZE, leading=TITLE_LEADING, gray=0.1,
    )
    if subtitle_lines:
        subtitle_top = PAGE_HEIGHT - MARGIN_TOP - len(title_lines) * TITLE_LEADING - 8
        _draw_text_lines(
            commands, subtitle_lines, MARGIN_LEFT, subtitle_top,
            font="F1", font_size=SUBTITLE_FONT_SIZE, leading=SUBTITLE_LEADING, gray=0.25,
        )

    table_top = PAGE_HEIGHT - MARGIN_TOP - _header_block_height(title_lines, subtitle_lines) - 12
    _draw_hline(commands, table_top + 4, 0.75, 0.6)

    # Ligne d'en-tête (répétée sur chaque page)
    cursor_y = table_top
    _draw_rect(
        commands, MARGIN_LEFT, cursor_y - header_height, CONTENT_WIDTH, header_height,
        fill_gray=0.92, stroke_gray=0.68, stroke_width=0.55,
    )
    x = MARGIN_LEFT
    for lines, width in zip(header_cells, column_widths):
        _draw_rect(commands, x, cursor_y - header_height, width, header_height, stroke_gray=0.7, stroke_width=0.45)
        _draw_text_lines(
            commands, lines, x + TABLE_CELL_PADDING_X, cursor_y - TABLE_CELL_PADDING_TOP,
            font="F2", font_size=TABLE_HEADER_FONT_SIZE, leading=TABLE_HEADER_LEADING, gray=0.1,
        )
        x += width
    cursor_y -= header_height

    # Lignes de données
    for row in page_rows:
        if row.index % 2 == 0:
            _draw_rect(commands, MARGIN_LEFT, cursor_y - row.height, CONTENT_WIDTH, row.height, fill_gray=0.985)
        x = MARGIN_LEFT
        for lines, width in zip(row.cells, column_widths):
            _draw_rect(commands, x, cursor_y - row.height, width, row.height, stroke_gray=0.84, stroke_width=0.35)
            _draw_text_lines(
                commands, lines, x + TABLE_CELL_PADDING_X, cursor_y - TABLE_CELL_PADDING_TOP,
                font="F1", font_size=TABLE_FONT_SIZE, leading=TABLE_FONT_LEADING, gray=0.12,
            )
            x += width
        cursor_y -= row.height

    # Pied de page
    _draw_hline(commands, footer_y + 12, 0.8, 0.5)
    _draw_text_lines(
        commands, [f"Page {page_index + 1} sur {page_count}"], MARGIN_LEFT, footer_y + 9,
        font="F1", font_size=8.4, leading=10, gray=0.35,
    )

    return "\n".join(commands) + "\n"


# ============================================================
# PDF : sérialisation
# ============================================================

def _assemble_pdf(page_contents: List[str]) -> bytes:
    """
    Objets : 1 catalogue, 2 arbre des pages, 3-4 polices, puis pour chaque page
    l'objet /Page suivi de son flux de contenu.
    """
    objects = {
        1: b"<< /Type /Catalog /Pages 2 0 R >>",
        3: b"<< /Type /Font /Subtype /Type1 /Name /F1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
        4: b"<< /Type /Font /Subtype /Type1 /Name /F2 /BaseFont /Helvetica-Bold /Encoding /WinAnsiEncoding >>",
    }

    page_refs = []
    object_id = 5
    for content in page_contents:
        page_id, content_id = object_id, object_id + 1
        object_id += 2
        page_refs.append(f"{page_id} 0 R")
        objects[page_id] = (
            "<< /Type /Page /Parent 2 0 R "
            f"/MediaBox [0 0 {_fmt(PAGE_WIDTH)} {_fmt(PAGE_HEIGHT)}] "
            "/Resources << /Font << /F1 3 0 R /F2 4 0 R >> >> "
            f"/Contents {content_id} 0 R >>"
        ).encode("ascii")
        stream = content.encode("ascii")
        objects[content_id] = b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"endstream"

    objects[2] = f"<< /Type /Pages /Kids [{' '.join(page_refs)}] /Count {len(page_refs)} >>".encode("ascii")

    buffer = io.BytesIO()
    buffer.write(b"%PDF-1.4\n")
    size = object_id
    offsets = {}
    for obj_id in range(1, size):
        offsets[obj_id] = buffer.tell()
        buffer.write(b"%d 0 obj\n" % obj_id + objects[obj_id] + b"\nendobj\n")

    xref_offset = buffer.tell()
    buffer.write(b"xref\n0 %d\n0000000000 65535 f \n" % size)
    for obj_id in range(1, size):
        buffer.write(b"%010d 00000 n \n" % offsets[obj_id])
    buffer.write(b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (size, xref_offset))
    return buffer.getvalue()


def build_simple_table_pdf(
    title: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    subtitle_lines: Sequence[str] = (),
) -> bytes:
    """Construit le PDF paginé d'un tableau (en-têtes + lignes de chaînes)."""
    title_lines = wrap_by_words(title, max(24, math.floor(CONTENT_WIDTH / (TITLE_FONT_SIZE * CHAR_WIDTH_RATIO))))
    subtitle_capacity = max(28, math.floor(CONTENT_WIDTH / (SUBTITLE_FONT_SIZE * CHAR_WIDTH_RATIO)))
    wrapped_subtitles = [line for sub in subtitle_lines for line in wrap_by_words(sub, subtitle_capacity)]

    table_top = PAGE_HEIGHT - MARGIN_TOP - _header_block_height(title_lines, wrapped_subtitles) - 12
    table_bottom_limit = MARGIN_BOTTOM + FOOTER_HEIGHT + 14
    available_height = table_top - table_bottom_limit

    column_widths = compute_column_widths(headers, rows, CONTENT_WIDTH)
    header_cells = [
        wrap_by_words(header, estimate_char_capacity(width, TABLE_HEADER_FONT_SIZE))
        for header, width in zip(headers, column_widths)
    ]
    header_lines = max([len(lines) for lines in header_cells] + [1])
    header_height = TABLE_CELL_PADDING_TOP + TABLE_CELL_PADDING_BOTTOM + header_lines * TABLE_HEADER_LEADING

    pages = _paginate(_prepare_rows(rows, column_widths), header_height, available_height)
    contents = [
        _build_page_content(
            page_rows, index, len(pages), title_lines, wrapped_subtitles,
            header_cells, header_height, column_widths,
        )
        for index, page_rows in enumerate(pages)
    ]
    return _assemble_pdf(contents)
