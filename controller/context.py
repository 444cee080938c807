from __future__ import annotations

import re


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
    return out


def parse_channel_id_token(token: str | None) -> str | None:
    token = (token or "").strip()
    if not token:
        return None
    # Channel mention: <#1234567890>
    m = re.match(r"^<#!?(\d{8,22})>$", token)
    if m:
        return m.group(1)
    m2 = re.match(r"^(\d{8,22})$", token)
    if m2:
        return m2.group(1)
    return None


def parse_float(raw: str | None, default: float) -> float:
    try:
        return float((raw or "").strip())
    except ValueError:
        return default


def resolve_effective_channel(
    channel_id: str,
    parent_id: str | None,
    *,
    allowed_direct: bool,
    allowed_parent: bool,
) -> str | None:
    """
    Channel id used for memory scoping, or None when the message is not authorized.

    Threads share their parent's memory whenever the parent is allow-listed.
    """
    if parent_id and allowed_parent:
        return parent_id
    if allowed_direct:
        return channel_id
    return None
