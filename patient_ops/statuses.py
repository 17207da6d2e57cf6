from __future__ import annotations

from dataclasses import dataclass

NEUTRAL_COLOR = "#94a3b8"

REFERRAL_OPTIONS: tuple[str, ...] = ("TU0", "TU1", "TU2", "TU3")
DEFAULT_REFERRAL = "TU0"

EVENT_TYPE_APPOINTMENT = "appointment"
EVENT_TYPE_REMINDER = "reminder"
EVENT_TYPES: tuple[str, ...] = (EVENT_TYPE_APPOINTMENT, EVENT_TYPE_REMINDER)


@dataclass(frozen=True)
class StatusOption:
    value: str
    label: str
    color: str


@dataclass(frozen=True)
class StatusScheme:
    """
    Status set chosen at configuration time.

    - default  : status of a freshly created appointment
    - terminal : status that marks the encounter as done and prompts the activity log
    """
    name: str
    options: tuple[StatusOption, ...]
    default: str
    terminal: str

    @property
    def values(self) -> list[str]:
        return [o.value for o in self.options]

    def has(self, status: str) -> bool:
        return any(o.value == status for o in self.options)

    def is_terminal(self, status: str | None) -> bool:
        return status == self.terminal

    def color_for(self, status: str) -> str:
        for o in self.options:
            if o.value == status:
                return o.color
        return NEUTRAL_COLOR

    def label_for(self, status: str) -> str:
        for o in self.options:
            if o.value == status:
                return o.label
        return status


LEGACY = StatusScheme(
    name="legacy",
    options=(
        StatusOption("pending", "Pending", "#f97316"),
        StatusOption("today", "Today", "#22c55e"),
        StatusOption("cancelled", "Cancelled", "#ef4444"),
        StatusOption("done", "Done", "#3b82f6"),
    ),
    default="pending",
    terminal="done",
)

REVISED = StatusScheme(
    name="revised",
    options=(
        StatusOption("confirmed", "Confirmed", "#f97316"),
        StatusOption("ongoing", "Ongoing", "#22c55e"),
        StatusOption("completed", "Completed", "#3b82f6"),
        StatusOption("no_show", "No Show / DNA", "#a855f7"),
    ),
    default="confirmed",
    terminal="completed",
)

SCHEMES: dict[str, StatusScheme] = {s.name: s for s in (LEGACY, REVISED)}


def get_scheme(name: str) -> StatusScheme:
    try:
        return SCHEMES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown status scheme '{name}'. Use one of: {', '.join(SCHEMES)}") from None
