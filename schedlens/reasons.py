from __future__ import annotations

# Free-text reason tags and state names, as emitted by trace decoders, mapped
# onto the core taxonomy.

from schedlens.types import BlockReason, TaskState

_BY_VALUE = {r.value: r for r in BlockReason}

# Order matters: the first matching rule wins.
_RULES: tuple[tuple[tuple[str, ...], BlockReason], ...] = (
    (("mutex", "lock", "semacquire"), BlockReason.LOCK_ACQUIRE),
    (("syscall",), BlockReason.SYSCALL),
    (("gc",), BlockReason.GC),
    (("select",), BlockReason.SELECT),
    (("network", "poll"), BlockReason.NETWORK),
    (("sleep", "timer"), BlockReason.SLEEP),
    (("sync", "cond", "wait"), BlockReason.SYNC),
)

_STATES = {
    "running": TaskState.RUNNING,
    "runnable": TaskState.RUNNABLE,
    "ready": TaskState.RUNNABLE,
    "blocked": TaskState.BLOCKED,
    "waiting": TaskState.BLOCKED,
}


def classify_reason(text: str | None) -> BlockReason:
    if not text:
        return BlockReason.NONE

    r = text.strip().lower()
    direct = _BY_VALUE.get(r)
    if direct is not None:
        return direct

    if "chan receive" in r or "chan send" in r:
        if "receive" in r:
            return BlockReason.CHANNEL_RECV
        return BlockReason.CHANNEL_SEND

    for needles, reason in _RULES:
        if any(n in r for n in needles):
            return reason
    return BlockReason.NONE


def parse_state(text: str) -> TaskState:
    """Map a decoder state name onto the three tracked states.

    Anything that is neither running nor runnable (syscall, waiting, unknown
    runtime-specific names) counts as blocked.
    """

    return _STATES.get(str(text).strip().lower(), TaskState.BLOCKED)
