from __future__ import annotations

from typing import Any

from memory.service import calculate_token_savings

AI_CONFIG_FIELDS = ("provider", "model", "temperature", "max_output_tokens")


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {"success": True}
    if data is not None:
        out["data"] = data
    if message:
        out["message"] = message
    return out


def fail(error: str) -> dict[str, Any]:
    return {"success": False, "error": str(error)}


def _clean_channel_id(channel_id) -> str:
    return str(channel_id or "").strip()


def _validate_ai_config_changes(changes: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    clean: dict[str, Any] = {}
    for key, value in (changes or {}).items():
        if key not in AI_CONFIG_FIELDS:
            return ({}, f"Unknown AI config field: {key}")
        if value is None:
            continue
        if key in {"provider", "model"}:
            text = str(value).strip()
            if not text:
                return ({}, f"{key} must not be empty")
            clean[key] = text
        elif key == "temperature":
            try:
                temp = float(value)
            except (TypeError, ValueError):
                return ({}, "temperature must be a number")
            if not 0.0 <= temp <= 2.0:
                return ({}, "temperature must be between 0 and 2")
            clean[key] = temp
        else:
            try:
                cap = int(value)
            except (TypeError, ValueError):
                return ({}, "max_output_tokens must be an integer")
            if cap < 1:
                return ({}, "max_output_tokens must be at least 1")
            clean[key] = cap
    if not clean:
        return ({}, "No AI config changes given")
    return (clean, None)


class AdminService:
    """
    Operator-facing operations over the context store.

    Every method returns a {success, data?, error?, message?} envelope and
    never raises; store errors become {"success": False, "error": ...}.
    """

    def __init__(self, *, store) -> None:
        self.store = store

    # ---- channels ----
    async def list_channels(self) -> dict[str, Any]:
        try:
            return ok(await self.store.list_allowed_channels())
        except Exception as e:
            print(f"[Admin] list channels failed: {e}")
            return fail(str(e) or "Failed to fetch channels")

    async def add_channel(
        self,
        channel_id,
        channel_name: str | None = None,
        server_id: str | None = None,
    ) -> dict[str, Any]:
        cid = _clean_channel_id(channel_id)
        if not cid:
            return fail("Channel ID is required")
        try:
            row = await self.store.add_allowed_channel(
                cid,
                (channel_name or "").strip() or None,
                _clean_channel_id(server_id) or None,
            )
        except Exception as e:
            print(f"[Admin] add channel {cid} failed: {e}")
            return fail(str(e) or "Failed to add channel")
        print(f"[Admin] channel allowed channel={cid}")
        return ok(row, "Channel added to allow-list")

    async def remove_channel(self, channel_id) -> dict[str, Any]:
        cid = _clean_channel_id(channel_id)
        if not cid:
            return fail("Channel ID is required")
        try:
            removed = await self.store.remove_allowed_channel(cid)
        except Exception as e:
            print(f"[Admin] remove channel {cid} failed: {e}")
            return fail(str(e) or "Failed to remove channel")
        print(f"[Admin] channel removed channel={cid} rows={removed}")
        return ok({"removed": int(removed)}, "Channel removed from allow-list")

    # ---- settings ----
    async def get_settings(self) -> dict[str, Any]:
        try:
            instructions = await self.store.get_instructions()
        except Exception as e:
            print(f"[Admin] get settings failed: {e}")
            return fail(str(e) or "Failed to fetch settings")
        return ok({"instructions": instructions["text"], "ai_config": instructions["ai_config"]})

    async def update_instructions(self, text) -> dict[str, Any]:
        if not isinstance(text, str) or not text.strip():
            return fail("Instructions text is required")
        try:
            await self.store.set_instructions(text.strip())
        except Exception as e:
            print(f"[Admin] update instructions failed: {e}")
            return fail(str(e) or "Failed to update settings")
        return ok(message="System instructions updated successfully")

    async def update_ai_config(self, changes: dict[str, Any]) -> dict[str, Any]:
        clean, error = _validate_ai_config_changes(changes)
        if error:
            return fail(error)
        try:
            merged = await self.store.update_ai_config(clean)
        except Exception as e:
            print(f"[Admin] update ai config failed: {e}")
            return fail(str(e) or "Failed to update settings")
        return ok(merged, "AI config updated successfully")

    # ---- memory ----
    async def get_summaries(self, channel_id=None) -> dict[str, Any]:
        """One channel's summary (absent rows read as empty) or every stored summary."""
        cid = _clean_channel_id(channel_id)
        try:
            if cid:
                row = await self.store.get_summary(cid)
                if row is None:
                    row = {"channel_id": cid, "summary": "", "message_count": 0}
                return ok(row)
            return ok(await self.store.list_summaries())
        except Exception as e:
            print(f"[Admin] get summaries failed: {e}")
            return fail(str(e) or "Failed to fetch summaries")

    async def reset_summary(self, channel_id) -> dict[str, Any]:
        cid = _clean_channel_id(channel_id)
        if not cid:
            return fail("Channel ID is required")
        try:
            await self.store.reset_summary(cid)
        except Exception as e:
            print(f"[Admin] reset summary {cid} failed: {e}")
            return fail(str(e) or "Failed to reset summary")
        print(f"[Admin] summary reset channel={cid}")
        return ok(message="Conversation summary reset successfully")

    async def memory_stats(self) -> dict[str, Any]:
        try:
            totals = await self.store.memory_totals()
        except Exception as e:
            print(f"[Admin] memory stats failed: {e}")
            return fail(str(e) or "Failed to fetch memory stats")
        savings = calculate_token_savings(totals["message_count"], totals["summary_chars"])
        return ok({**totals, **savings})
