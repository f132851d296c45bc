"""旧 `/reademail` のパラメータ検証。"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Mapping


@dataclass(slots=True)
class LegacyReadFields:
    from_addr: str | None = None
    password: str | None = None
    subject: str | None = None
    sender: str | None = None
    filename: str | None = None
    filetype: str | None = None
    counted: int | None = None
    separator: str | None = None
    header: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> LegacyReadFields:
        return cls(
            from_addr=params.get("from"),
            password=params.get("paswd"),
            subject=params.get("subject"),
            sender=params.get("sender"),
            filename=params.get("filename"),
            filetype=params.get("filetype"),
            counted=_parse_int(params.get("counted")),
            separator=params.get("separator"),
            header=params.get("header"),
        )

    @property
    def include_header(self) -> bool:
        return (self.header or "").strip().lower() == "true"


def validate_read_fields(fields: LegacyReadFields) -> str | None:
    """必須項目の欠落を旧実装と同じ順序で `{"errors": ...}` 形式にして返す。"""

    checks = (
        ("from", fields.from_addr),
        ("password", fields.password),
        ("counted", fields.counted),
        ("sender", fields.sender),
        ("filetype", fields.filetype),
        ("separator", fields.separator),
        ("filename", fields.filename),
    )
    for name, value in checks:
        if value is None or (isinstance(value, str) and not value.strip()):
            return errors_json(f"{name} tidak boleh null")
    return None


def errors_json(message: str) -> str:
    return json.dumps({"errors": message}, ensure_ascii=False)


def _parse_int(raw: str | None) -> int | None:
    # 数値として読めない値は未指定と同じ扱いにする。
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None
