from __future__ import annotations

# Summary refresh fires after message 10, 20, 30, ...
SUMMARY_INTERVAL = 10


def should_summarize(total_message_count: int) -> bool:
    count = int(total_message_count)
    return count > 0 and count % SUMMARY_INTERVAL == 0
