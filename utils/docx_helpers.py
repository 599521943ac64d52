from docx.table import _Cell


def set_cell_text(cell: _Cell, text: str, bold: bool = False, italic: bool = False) -> None:
    """
    Replace everything in a table cell with a single formatted run.
    """
    cell.text = ""
    run = cell.paragraphs[0].add_run(text)
    run.bold = bold
    run.italic = italic


def add_labelled_value(cell: _Cell, label: str, value: str) -> None:
    """Bold label on the first line, value underneath."""
    set_cell_text(cell, label, bold=True)
    cell.add_paragraph(value)
