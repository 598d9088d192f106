from __future__ import annotations

import time
import uuid
from typing import Optional


def generate_batch_id(now_ms: Optional[int] = None) -> str:
    """batch_{epoch_ms}_{6 hex}. 같은 ms 안에서도 충돌하지 않도록 uuid 접미사."""
    ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    return f"batch_{ms}_{uuid.uuid4().hex[:6]}"


def region_name(document_key: str, label: str, index: int) -> str:
    """크롭 식별자: "{document}:{label}:{index:02d}" (audit/debug 용)."""
    return f"{document_key}:{label}:{index:02d}"
