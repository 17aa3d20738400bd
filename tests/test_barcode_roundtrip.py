"""Real zxing-cpp decoding of a generated Code128 symbol (no stubbed backend)."""
import numpy as np
import pytest
import zxingcpp

from markengine.engine import Engine
from markengine.output import BarcodeAnswer, BubbleAnswer, Hit, Outcome
from markengine.scanned_image import ScannedImage
from markengine.tools.barcode_reader import read_barcode_field

SYMBOL_AT = (60, 90)
BAR_HEIGHT = 50


def _code128(text: str) -> np.ndarray:
    """Grayscale Code128 bars, two pixels per module, BAR_HEIGHT rows tall."""
    fmt = zxingcpp.BarcodeFormat.Code128
    if hasattr(zxingcpp, "create_barcode"):
        img = np.asarray(zxingcpp.write_barcode_to_image(zxingcpp.create_barcode(text, fmt)))
    else:
        img = np.asarray(zxingcpp.write_barcode(fmt, text))
    if img.ndim == 3:
        img = img[..., 0]
    row = img[img.shape[0] // 2].astype(np.uint8)
    return np.repeat(np.tile(row, (BAR_HEIGHT, 1)), 2, axis=1)


def _paste(page: np.ndarray, symbol: np.ndarray) -> None:
    x, y = SYMBOL_AT
    h, w = symbol.shape
    if page.ndim == 3:
        page[y:y + h, x:x + w] = symbol[..., None]
    else:
        page[y:y + h, x:x + w] = symbol


@pytest.fixture
def symbol():
    return _code128("FORM-42")


def test_generated_symbol_decodes_to_working_coordinates(barcode, symbol):
    h, w = symbol.shape
    gray = np.full((200, w + 160), 255, dtype=np.uint8)
    _paste(gray, symbol)
    fld = barcode("code", (SYMBOL_AT[0] - 30, SYMBOL_AT[1] - 20, w + 60, h + 40))

    res = read_barcode_field(gray, fld)

    assert isinstance(res, Hit)
    ans = res.answer
    assert (ans.id, ans.data, ans.format) == ("code", "FORM-42", "Code128")
    x0, y0 = SYMBOL_AT
    assert x0 - 2 <= ans.top_left.x < ans.bottom_right.x <= x0 + w + 2
    assert y0 <= ans.top_left.y <= y0 + h
    assert ans.bottom_right.y == ans.top_left.y + 10


def test_inverted_symbol_decodes(barcode, symbol):
    h, w = symbol.shape
    gray = np.zeros((200, w + 160), dtype=np.uint8)
    _paste(gray, 255 - symbol)

    res = read_barcode_field(gray, barcode("code", (SYMBOL_AT[0] - 30, SYMBOL_AT[1] - 20, w + 60, h + 40)))

    assert isinstance(res, Hit)
    assert res.answer.data == "FORM-42"


def test_engine_reports_barcode_and_bubble(make_template, barcode, bubble, blank_page, fill, symbol, options):
    h, w = symbol.shape
    size = (w + 160, 240)
    tpl = make_template([
        barcode("code", (SYMBOL_AT[0] - 30, SYMBOL_AT[1] - 20, w + 60, h + 40)),
        bubble("q1-a", "q1", "A", (20, 190, 20, 20)),
    ], size=size)
    page = blank_page(size)
    _paste(page, symbol)
    fill(page, (25, 195, 10, 10))

    out = Engine(options).apply_template(tpl, ScannedImage(page))

    assert out.outcome is Outcome.SUCCESS
    code, mark = out.details
    assert isinstance(code, BarcodeAnswer) and code.data == "FORM-42"
    assert isinstance(mark, BubbleAnswer) and (mark.key, mark.value) == ("q1", "A")
