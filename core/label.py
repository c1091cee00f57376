"""Label record and the single update rule shared by manual edits and the scale."""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

DEFAULT_QR_TEMPLATE = "https://tracking.post.ir/?id={tracking}"
IDENTIFIER_FIELD = "tracking_number"


@dataclass(frozen=True)
class LabelRecord:
    tracking_number: str = ""
    order_id: str = ""
    sender_name: str = ""
    sender_city: str = ""
    sender_address: str = ""
    receiver_name: str = ""
    receiver_city: str = ""
    receiver_address: str = ""
    receiver_post_code: str = ""
    receiver_phone: str = ""
    receiver_mobile: str = ""
    weight: str = ""
    price: str = ""
    payment_method: str = ""
    date: str = ""
    time: str = ""
    barcode: str = ""
    qr_data: str = ""
    custom_note: str = ""

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    def to_dict(self) -> dict[str, str]:
        return dataclasses.asdict(self)


def apply_field(
    record: LabelRecord,
    field: str,
    value: Any,
    *,
    qr_template: str = DEFAULT_QR_TEMPLATE,
) -> LabelRecord:
    """Return a copy of `record` with one field replaced.

    Changing the tracking number re-derives `barcode` and `qr_data`. Editing
    either derived field directly sticks until the tracking number changes again.
    """
    if field not in LabelRecord.field_names():
        raise KeyError(f"Unknown label field '{field}'")
    text = "" if value is None else str(value)
    updates = {field: text}
    if field == IDENTIFIER_FIELD:
        updates["barcode"] = text
        updates["qr_data"] = qr_template.format(tracking=text)
    return dataclasses.replace(record, **updates)


def build_label_record(
    data: Mapping[str, Any] | None = None,
    *,
    qr_template: str = DEFAULT_QR_TEMPLATE,
    now: datetime | None = None,
) -> LabelRecord:
    """Build the session-start record from a defaults mapping.

    Blank `date`/`time` are stamped from the local clock. Derived fields follow
    the tracking number unless the mapping sets them explicitly.
    """
    data = dict(data or {})
    known = set(LabelRecord.field_names())
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        raise KeyError(f"Unknown label fields: {', '.join(unknown)}")

    record = LabelRecord()
    if IDENTIFIER_FIELD in data:
        record = apply_field(
            record, IDENTIFIER_FIELD, data.pop(IDENTIFIER_FIELD), qr_template=qr_template
        )
    for key, value in data.items():
        record = apply_field(record, key, value, qr_template=qr_template)

    ref = now or datetime.now()
    if not record.date:
        record = dataclasses.replace(record, date=ref.strftime("%Y-%m-%d"))
    if not record.time:
        record = dataclasses.replace(record, time=ref.strftime("%H:%M:%S"))
    return record


class LabelBook:
    """Holds the current label record; every write is a whole-field replacement."""

    def __init__(
        self,
        record: LabelRecord | None = None,
        *,
        qr_template: str = DEFAULT_QR_TEMPLATE,
    ):
        self._record = record or LabelRecord()
        self._qr_template = qr_template
        self._lock = threading.Lock()

    def snapshot(self) -> LabelRecord:
        with self._lock:
            return self._record

    def get(self, field: str) -> str:
        return getattr(self.snapshot(), field)

    def update(self, field: str, value: Any) -> LabelRecord:
        with self._lock:
            self._record = apply_field(
                self._record, field, value, qr_template=self._qr_template
            )
            return self._record

    def update_many(self, values: Mapping[str, Any]) -> LabelRecord:
        items = list(values.items())
        # Tracking number first so explicit barcode/qr_data edits in the same
        # batch win over the derived values.
        items.sort(key=lambda kv: kv[0] != IDENTIFIER_FIELD)
        with self._lock:
            record = self._record
            for key, value in items:
                record = apply_field(record, key, value, qr_template=self._qr_template)
            self._record = record
            return record

    def set_if_changed(self, field: str, value: Any) -> bool:
        text = "" if value is None else str(value)
        with self._lock:
            if getattr(self._record, field) == text:
                return False
            self._record = apply_field(
                self._record, field, text, qr_template=self._qr_template
            )
            return True


__all__ = [
    "DEFAULT_QR_TEMPLATE",
    "LabelRecord",
    "LabelBook",
    "apply_field",
    "build_label_record",
]
