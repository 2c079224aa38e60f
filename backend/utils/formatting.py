import re

_DIGITS = re.compile(r"(\d+)")


def tool_number_sort_key(number: str):
    """Sort key for tool numbers: "2" before "10", purely numeric numbers first.

    Mixed numbers such as "T-10" compare chunk by chunk, so "T-2" < "T-10".
    """
    value = (number or "").strip()
    if value.isdigit():
        return (0, int(value), "")
    parts = _DIGITS.split(value.lower())
    return (1, 0, tuple((1, int(p), "") if p.isdigit() else (0, 0, p) for p in parts if p))


def display_user_name(live_name, snapshot_name) -> str:
    """Current name of a user on a ledger row, falling back to the row's snapshot."""
    return live_name or snapshot_name or "Deleted user"
