"""
Parsers for the two PVGIS response dialects.

Neither dialect is well-formed enough for a strict parser:

- The v5 calculator answers with tab-separated plain text. Lines end in
  "\\r\\n", columns are occasionally separated by a doubled tab, and rows are
  recognised by their first column ("1".."12", "Year", "Fixed system:").
- The classic calculator answers with an HTML table fragment. Rows are
  recognised by a marker cell and cut at a terminator string; the remaining
  tags are rewritten into a comma-separated record.

A row whose column count does not match its expected arity is treated as
absent, never as zero, so shifted columns cannot leak into a record.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

from app.config import Dialect, MONTH_NAMES, NO_DATA_MARKER
from app.engine.numbers import INVARIANT, NumberFormat, parse_number
from app.models.pvgis import (
    FixedSystemLosses,
    MonthlyRecord,
    ParsedResponse,
    ReportedYearlyTotal,
)


class ResponseParser(ABC):
    """Base class for PVGIS response dialects."""

    dialect: Dialect

    def __init__(self, number_format: NumberFormat = INVARIANT):
        self.number_format = number_format

    @abstractmethod
    def parse(self, body: str) -> ParsedResponse:
        """Parse a raw response body into a possibly partial result."""
        ...

    def _num(self, token: str) -> float:
        return parse_number(token, self.number_format)


# ---------------------------------------------------------------------------
# Tab-delimited dialect (PVGIS v5)
# ---------------------------------------------------------------------------

MONTH_ROW_ARITY = 6          # key, Ed, Em, Hd, Hm, SDm
FIXED_SYSTEM_ROW_ARITY = 5   # key, aoi, spectral, temp, combined
YEAR_KEY = "Year"
FIXED_SYSTEM_KEY = "Fixed system:"


class TabDelimitedParser(ResponseParser):
    dialect = Dialect.TAB_DELIMITED

    def parse(self, body: str) -> ParsedResponse:
        rows = split_tab_rows(body)

        monthly = {
            month: self._month_record(rows, str(month), month)
            for month in range(1, 13)
        }

        return ParsedResponse(
            monthly=monthly,
            yearly_average=self._month_record(rows, YEAR_KEY, None),
            fixed_system_losses=self._fixed_system(rows),
            no_data=NO_DATA_MARKER in body,
        )

    def _month_record(
        self, rows: list[list[str]], key: str, month: Optional[int]
    ) -> Optional[MonthlyRecord]:
        cols = find_row(rows, key, MONTH_ROW_ARITY)
        if cols is None:
            return None
        return MonthlyRecord(
            month=month,
            Ed=self._num(cols[1]),
            Em=self._num(cols[2]),
            Hd=self._num(cols[3]),
            Hm=self._num(cols[4]),
            SDm=self._num(cols[5]),
        )

    def _fixed_system(self, rows: list[list[str]]) -> Optional[FixedSystemLosses]:
        cols = find_row(rows, FIXED_SYSTEM_KEY, FIXED_SYSTEM_ROW_ARITY)
        if cols is None:
            return None
        return FixedSystemLosses(
            aoi=self._num(cols[1]),
            spectral=self._num(cols[2]),
            temperature=self._num(cols[3]),
            combined=self._num(cols[4]),
        )


def split_tab_rows(body: str) -> list[list[str]]:
    """Normalize line endings and doubled tabs, then split into columns."""
    lines = body.replace("\n", "").split("\r")
    return [line.replace("\t\t", "\t").split("\t") for line in lines]


def find_row(rows: list[list[str]], key: str, arity: int) -> Optional[list[str]]:
    """First row whose first column equals key and whose width equals arity."""
    for cols in rows:
        if len(cols) == arity and cols[0] == key:
            return cols
    return None


# ---------------------------------------------------------------------------
# HTML dialect (PVGIS classic)
# ---------------------------------------------------------------------------

ROW_MARKER = "<td> {} </td>"
BOLD_ROW_MARKER = "<td><b> {} </b></td>"
ROW_TERMINATOR = "</td></tr>"
ROW_SEPARATOR = '<td align="right">'
MONTH_FIELD_COUNT = 5        # key, Ed, Em, Hd, Hm

TOTAL_MARKER = "<td><b>{}</b></td>"
TOTAL_TERMINATOR = "</td> </tr>"   # upstream puts a space before </tr> here
TOTAL_SEPARATOR = '<td align="right" colspan=2 >'
TOTAL_FIELD_COUNT = 3        # key, e, h

YEARLY_AVERAGE_LABEL = "Yearly average"
YEARLY_TOTAL_LABEL = "Total for year"


class HtmlTableParser(ResponseParser):
    dialect = Dialect.HTML

    def parse(self, body: str) -> ParsedResponse:
        monthly = {
            month: self._month_record(body, name, month)
            for month, name in enumerate(MONTH_NAMES, start=1)
        }

        return ParsedResponse(
            monthly=monthly,
            yearly_average=self._month_record(body, YEARLY_AVERAGE_LABEL, None),
            reported_total=self._reported_total(body),
            no_data=NO_DATA_MARKER in body,
        )

    def _month_record(
        self, html: str, label: str, month: Optional[int]
    ) -> Optional[MonthlyRecord]:
        content = cut_row(html, ROW_MARKER.format(label), ROW_TERMINATOR)
        if content is None:
            content = cut_row(html, BOLD_ROW_MARKER.format(label), ROW_TERMINATOR)
        if content is None:
            return None

        fields = (
            content
            .replace("</td>", "")
            .replace("<b>", "")
            .replace("</b>", "")
            .replace(ROW_SEPARATOR, ",")
            .split(",")
        )
        if len(fields) != MONTH_FIELD_COUNT:
            return None

        return MonthlyRecord(
            month=month,
            Ed=self._num(fields[1]),
            Em=self._num(fields[2]),
            Hd=self._num(fields[3]),
            Hm=self._num(fields[4]),
        )

    def _reported_total(self, html: str) -> Optional[ReportedYearlyTotal]:
        content = cut_row(html, TOTAL_MARKER.format(YEARLY_TOTAL_LABEL), TOTAL_TERMINATOR)
        if content is None:
            return None

        fields = (
            content
            .replace(TOTAL_SEPARATOR, ",")
            .replace("<b>", "")
            .replace("</b>", "")
            .replace("</td>", "")
            .split(",")
        )
        if len(fields) != TOTAL_FIELD_COUNT:
            return None

        return ReportedYearlyTotal(e=self._num(fields[1]), h=self._num(fields[2]))


def cut_row(html: str, marker: str, terminator: str) -> Optional[str]:
    """
    Return the text between a marker and the next terminator.

    Both are matched case-insensitively, the returned slice keeps the
    original casing.
    """
    found = re.search(re.escape(marker), html, re.IGNORECASE)
    if found is None:
        return None

    end = re.compile(re.escape(terminator), re.IGNORECASE).search(html, found.end())
    if end is None:
        return None
    return html[found.end():end.start()]


PARSERS: dict[Dialect, type[ResponseParser]] = {
    Dialect.TAB_DELIMITED: TabDelimitedParser,
    Dialect.HTML: HtmlTableParser,
}


def parser_for(dialect: Dialect) -> ResponseParser:
    """Parser matching the dialect of the client that produced the body."""
    return PARSERS[dialect]()
