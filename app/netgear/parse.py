"""
Parsing functions that pull the per-channel data out of the DocsisStatus.asp HTML source.
    Only tested against the Netgear GenieLogin family of web interfaces (CM1000 and friends).

"""

from collections import OrderedDict
from dataclasses import dataclass

import structlog
from bs4 import BeautifulSoup, Tag
from err.exceptions import FieldParseError, MalformedPageError

log = structlog.get_logger(__name__)

# The channel tables live inside a div with this class.
# Every <tr> under it is a candidate row; the first one is the header.
CHANNEL_TABLE_SELECTOR = ".in-frame-table table"
CHANNEL_ROW_SELECTOR = f"{CHANNEL_TABLE_SELECTOR} tr"

# The modem gives us no usable header cells to key on, so the column order IS the contract.
# Map column header (as seen in the browser) to the record field and the unit suffix to strip.
# A unit of None means the column is kept as a string label.
# If a firmware update moves columns around, this is the only thing that should need to change.
##
CHANNEL_COLUMNS = OrderedDict()
CHANNEL_COLUMNS["Channel"] = {"field": "channel", "unit": None}
CHANNEL_COLUMNS["Lock Status"] = {"field": "lock_status", "unit": None}
CHANNEL_COLUMNS["Modulation"] = {"field": "modulation", "unit": None}
CHANNEL_COLUMNS["Channel ID"] = {"field": "channel_id", "unit": None}
CHANNEL_COLUMNS["Frequency"] = {"field": "frequency", "unit": None}
CHANNEL_COLUMNS["Power"] = {"field": "power_dbmv", "unit": "dBmV"}
CHANNEL_COLUMNS["SNR / MER"] = {"field": "snr_mer_db", "unit": "dB"}
# Codeword counts have no suffix but still need to be numbers
CHANNEL_COLUMNS["Unerrored Codewords"] = {"field": "unerrored_codewords", "unit": ""}
CHANNEL_COLUMNS["Correctable Codewords"] = {"field": "correctable_codewords", "unit": ""}
CHANNEL_COLUMNS["Uncorrectable Codewords"] = {
    "field": "uncorrectable_codewords",
    "unit": "",
}


@dataclass(frozen=True)
class ChannelRecord:
    """One row of the channel status table.

    Numeric fields are None when the cell could not be parsed this time around.
    """

    channel: str
    lock_status: str
    modulation: str
    channel_id: str
    frequency: str
    power_dbmv: float | None = None
    snr_mer_db: float | None = None
    unerrored_codewords: float | None = None
    correctable_codewords: float | None = None
    uncorrectable_codewords: float | None = None


def parse_measurement(raw: str, unit: str) -> float:
    """Turn something like ' 3.5 dBmV ' into 3.5

    Raises FieldParseError if what's left after dropping the unit isn't a number.
    """
    _value = raw.replace(unit, "") if unit else raw
    _value = _value.strip()
    try:
        return float(_value)
    except ValueError as ve:
        raise FieldParseError(
            f"Could not parse {raw!r} as a number", payload=raw
        ) from ve


def parse_channel_row(cells: list[str]) -> ChannelRecord | None:
    """Map one row worth of cell text onto a ChannelRecord.

    Returns None if the row does not have exactly one cell per known column.
    """
    if len(cells) != len(CHANNEL_COLUMNS):
        return None

    _fields = {}
    # Channel is always the first column; used to give context to parse failures
    _channel = cells[0]
    for (column_name, column), raw in zip(CHANNEL_COLUMNS.items(), cells):
        if column["unit"] is None:
            _fields[column["field"]] = raw
            continue
        try:
            _fields[column["field"]] = parse_measurement(raw, column["unit"])
        except FieldParseError as fpe:
            # One bad cell should not cost us the rest of the row
            log.warning(
                "Failed to parse channel field",
                channel=_channel,
                column=column_name,
                raw=raw,
                error=fpe,
            )
            _fields[column["field"]] = None

    return ChannelRecord(**_fields)


def parse_channel_table(soup: BeautifulSoup) -> list[ChannelRecord]:
    """Pull every channel row out of the parsed status page, in document order."""
    if soup.select_one(CHANNEL_TABLE_SELECTOR) is None:
        # Most likely we got bounced back to the login form
        raise MalformedPageError(
            f"No channel table matching '{CHANNEL_TABLE_SELECTOR}' on status page"
        )

    rows = soup.select(CHANNEL_ROW_SELECTOR)
    log.debug("Rows", count=len(rows))

    records = []
    # The first row is the header. There's nothing in it we can reliably check so skip it by position.
    for idx, row in enumerate(rows[1:], start=1):
        cells = _cell_text(row)
        record = parse_channel_row(cells)
        if record is None:
            # Section headers, summary rows ... etc share the same selector
            log.debug("Skipping row", row_idx=idx, cell_count=len(cells))
            continue
        log.debug("Parsed channel row", row_idx=idx, data=cells)
        records.append(record)

    return records


def find_web_token(soup: BeautifulSoup) -> str:
    """Pull the anti-forgery token out of the login form.

    Some firmware doesn't send one; that's fine, we just post an empty token.
    """
    token_input = soup.find("input", attrs={"name": "webToken"})
    if token_input is None or token_input.get("value") is None:
        log.warning("No webToken on login page. Continuing with empty token.")
        return ""
    return token_input["value"]


def _cell_text(row: Tag) -> list[str]:
    return [col.get_text().strip() for col in row.find_all("td")]
