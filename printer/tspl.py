"""TSPL command program for one shipping label.

Every coordinate below is in millimetres and converted with DOTS_PER_MM
(8 dots/mm, i.e. a 203 dpi head). Adding a label size means adding a
`LabelLayout` entry to `LAYOUTS`; `encode_label` itself never branches on size.

Text is passed through verbatim. Printers without a font for non-Latin scripts
will print garbage for such fields; callers should check
`needs_raster_fallback()` and send a rasterized page instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from core.contracts import LabelSize
from core.label import LabelRecord

DOTS_PER_MM = 8
GAP_MM = 3
DIRECTION = 1
DEFAULT_BRAND = "ARSH EXPRESS"
WEIGHT_UNIT = "g"


def mm_to_dots(mm: float) -> int:
    return int(round(float(mm) * DOTS_PER_MM))


@dataclass(frozen=True)
class TextSlot:
    template: str
    x_mm: float
    y_mm: float
    font: str = "2"
    rotation: int = 0
    x_scale: int = 1
    y_scale: int = 1


@dataclass(frozen=True)
class BoxSlot:
    x1_mm: float
    y1_mm: float
    x2_mm: float
    y2_mm: float
    thickness: int = 2  # dots


@dataclass(frozen=True)
class TextBlock:
    box: BoxSlot
    lines: tuple[TextSlot, ...]


@dataclass(frozen=True)
class BarcodeSlot:
    x_mm: float
    y_mm: float
    height_mm: float = 10
    symbology: str = "128"
    human_readable: int = 1
    rotation: int = 0
    narrow: int = 2
    wide: int = 2


@dataclass(frozen=True)
class QrSlot:
    x_mm: float
    y_mm: float
    ecc: str = "L"
    cell_width: int = 5
    mode: str = "A"
    rotation: int = 0
    model: str = "M2"
    mask: str = "S7"


@dataclass(frozen=True)
class LabelLayout:
    header: tuple[TextSlot, ...]
    barcode: BarcodeSlot
    blocks: tuple[TextBlock, ...]
    weight: TextSlot
    footer: tuple[TextSlot, ...]
    qr: QrSlot


def _blocks(
    right_mm: float,
    sender_y: float,
    sender_h: float,
    receiver_y: float,
    receiver_h: float,
):
    return (
        TextBlock(
            box=BoxSlot(2.5, sender_y, right_mm, sender_y + sender_h),
            lines=(TextSlot("Sender: {sender_name}", 3.75, sender_y + 2.5),),
        ),
        TextBlock(
            box=BoxSlot(2.5, receiver_y, right_mm, receiver_y + receiver_h),
            lines=(
                TextSlot("Receiver: {receiver_name}", 3.75, receiver_y + 2.5, font="3"),
                TextSlot(
                    "Phone: {receiver_phone} / {receiver_mobile}",
                    3.75,
                    receiver_y + 8.75,
                ),
                TextSlot("Post Code: {receiver_post_code}", 3.75, receiver_y + 13.75),
            ),
        ),
    )


# QR x is fixed per media width (80 or 100 mm); y positions follow height.
LAYOUTS: dict[LabelSize, LabelLayout] = {
    LabelSize.SIZE_100_100: LabelLayout(
        header=(
            TextSlot("{brand}", 3.75, 3.75, font="3"),
            TextSlot("{date}", 50, 3.75),
        ),
        barcode=BarcodeSlot(3.75, 10, height_mm=10),
        blocks=_blocks(97.5, 25, 18.75, 45, 30),
        weight=TextSlot("WEIGHT: {weight} " + WEIGHT_UNIT, 3.75, 81.25, font="4"),
        footer=(TextSlot("Order ID: {order_id}", 3.75, 93.75),),
        qr=QrSlot(68.75, 81.25, cell_width=5),
    ),
    LabelSize.SIZE_80_100: LabelLayout(
        header=(
            TextSlot("{brand}", 3.75, 3.75, font="3"),
            TextSlot("{date}", 40, 3.75),
        ),
        barcode=BarcodeSlot(3.75, 10, height_mm=10),
        blocks=_blocks(77.5, 25, 18.75, 45, 30),
        weight=TextSlot("WEIGHT: {weight} " + WEIGHT_UNIT, 3.75, 81.25, font="4"),
        footer=(TextSlot("Order ID: {order_id}", 3.75, 93.75),),
        qr=QrSlot(53.75, 81.25, cell_width=5),
    ),
    LabelSize.SIZE_100_80: LabelLayout(
        header=(
            TextSlot("{brand}", 3.75, 3, font="3"),
            TextSlot("{date}", 50, 3),
        ),
        barcode=BarcodeSlot(3.75, 8, height_mm=9),
        blocks=_blocks(97.5, 21, 12.75, 35, 23.75),
        weight=TextSlot("WEIGHT: {weight} " + WEIGHT_UNIT, 3.75, 62.5, font="4"),
        footer=(TextSlot("Order ID: {order_id}", 3.75, 72.5),),
        qr=QrSlot(68.75, 60, cell_width=4),
    ),
}


def escape_text(value: object) -> str:
    """Quote a value for a TSPL string argument.

    `"` uses the TSPL escape `\\["]`; CR/LF would end the instruction early, so
    they become spaces. Nothing else is altered.
    """
    text = "" if value is None else str(value)
    text = text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
    return text.replace('"', '\\["]')


def _text(slot: TextSlot, values: Mapping[str, str]) -> str:
    content = slot.template.format_map(values)
    return (
        f"TEXT {mm_to_dots(slot.x_mm)},{mm_to_dots(slot.y_mm)},"
        f'"{slot.font}",{slot.rotation},{slot.x_scale},{slot.y_scale},"{content}"'
    )


def _box(slot: BoxSlot) -> str:
    return (
        f"BOX {mm_to_dots(slot.x1_mm)},{mm_to_dots(slot.y1_mm)},"
        f"{mm_to_dots(slot.x2_mm)},{mm_to_dots(slot.y2_mm)},{slot.thickness}"
    )


def _barcode(slot: BarcodeSlot, content: str) -> str:
    return (
        f"BARCODE {mm_to_dots(slot.x_mm)},{mm_to_dots(slot.y_mm)},"
        f'"{slot.symbology}",{mm_to_dots(slot.height_mm)},{slot.human_readable},'
        f'{slot.rotation},{slot.narrow},{slot.wide},"{content}"'
    )


def _qrcode(slot: QrSlot, content: str) -> str:
    return (
        f"QRCODE {mm_to_dots(slot.x_mm)},{mm_to_dots(slot.y_mm)},{slot.ecc},"
        f"{slot.cell_width},{slot.mode},{slot.rotation},{slot.model},{slot.mask},"
        f'"{content}"'
    )


def encode_label(
    record: LabelRecord,
    size: LabelSize | str,
    *,
    copies: int = 1,
    brand: str = DEFAULT_BRAND,
) -> list[str]:
    """Return the ordered TSPL instructions for `record` on `size` media."""
    size = LabelSize.parse(size)
    if int(copies) < 1:
        raise ValueError("copies must be >= 1")
    layout = LAYOUTS[size]
    values = {k: escape_text(v) for k, v in record.to_dict().items()}
    values["brand"] = escape_text(brand)

    lines = [
        f"SIZE {size.width_mm} mm,{size.height_mm} mm",
        f"GAP {GAP_MM} mm,0 mm",
        f"DIRECTION {DIRECTION}",
        "CLS",
    ]
    lines.extend(_text(slot, values) for slot in layout.header)
    # The barcode always encodes the tracking number, not the editable barcode field.
    lines.append(_barcode(layout.barcode, values["tracking_number"]))
    for block in layout.blocks:
        lines.append(_box(block.box))
        lines.extend(_text(slot, values) for slot in block.lines)
    lines.append(_text(layout.weight, values))
    lines.extend(_text(slot, values) for slot in layout.footer)
    lines.append(_qrcode(layout.qr, values["qr_data"]))
    lines.append(f"PRINT {int(copies)}")
    return lines


def render_program(lines: Iterable[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


def build_program(
    record: LabelRecord,
    size: LabelSize | str,
    *,
    copies: int = 1,
    brand: str = DEFAULT_BRAND,
) -> str:
    return render_program(encode_label(record, size, copies=copies, brand=brand))


_PRINTED_FIELDS = (
    "tracking_number",
    "order_id",
    "sender_name",
    "receiver_name",
    "receiver_phone",
    "receiver_mobile",
    "receiver_post_code",
    "weight",
    "date",
    "qr_data",
)


def needs_raster_fallback(record: LabelRecord, brand: str = DEFAULT_BRAND) -> bool:
    """True when a printed field holds characters outside Latin-1."""
    texts = [getattr(record, name) for name in _PRINTED_FIELDS] + [brand]
    return any(ord(ch) > 0xFF for text in texts for ch in text)


__all__ = [
    "DOTS_PER_MM",
    "DEFAULT_BRAND",
    "WEIGHT_UNIT",
    "TextSlot",
    "BoxSlot",
    "TextBlock",
    "BarcodeSlot",
    "QrSlot",
    "LabelLayout",
    "LAYOUTS",
    "mm_to_dots",
    "escape_text",
    "encode_label",
    "render_program",
    "build_program",
    "needs_raster_fallback",
]
