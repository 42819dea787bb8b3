"""
CSV tokenizer for roster exports.

The spreadsheet exports never carry embedded newlines, so every physical
line is one record. Quoted fields may contain commas and doubled quotes.
"""
from typing import List

Row = List[str]


def tokenize_line(line: str) -> Row:
    """Split one CSV line into fields.

    Every '"' toggles quoting, also in the middle of a field; inside quotes
    '""' is a literal quote. An unterminated quote runs to the end of the line.
    """
    fields: Row = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)
        i += 1
    fields.append(''.join(current))
    return fields


def tokenize(text: str) -> List[Row]:
    """Split raw CSV text into rows of string fields, dropping blank lines."""
    if not text:
        return []
    if text.startswith('\ufeff'):
        text = text[1:]
    rows = []
    for line in text.split('\n'):
        if line.endswith('\r'):
            line = line[:-1]
        if line.strip():
            rows.append(tokenize_line(line))
    return rows


def cell(row: Row, index: int) -> str:
    """Return row[index], or '' when the row is too short."""
    if 0 <= index < len(row):
        return row[index]
    return ''
