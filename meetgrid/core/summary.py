"""
MeetGrid: Participation Summary Engine.

Aggregates response counts and the ranked slots into a summary, and
renders the plain-text version used by the share action. Date strings are
supplied by a DateFormatterPort; nothing here formats dates itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from meetgrid.core.scoring import OptimalTimeSlot
    from meetgrid.ports.formatter_port import DateFormatterPort


@dataclass
class ParticipationSummary:
    total_participants: int
    responded_count: int
    response_rate: float
    most_popular_slots: list[OptimalTimeSlot] = field(default_factory=list)
    least_popular_slots: list[OptimalTimeSlot] = field(default_factory=list)

    @property
    def response_percent(self) -> int:
        return int(self.response_rate * 100 + 0.5)


def build_participation_summary(
    total_participants: int,
    responded_count: int,
    scored: Sequence[OptimalTimeSlot],
    top_n: int = 5,
) -> ParticipationSummary:
    """Summarize a group's responses.

    `scored` must already be ranked (see score_time_slots). The least
    popular list holds the last top_n slots, worst first.
    """
    rate = responded_count / total_participants if total_participants > 0 else 0.0
    least = list(reversed(scored[-top_n:])) if top_n > 0 else []
    return ParticipationSummary(
        total_participants=total_participants,
        responded_count=responded_count,
        response_rate=rate,
        most_popular_slots=list(scored[:top_n]),
        least_popular_slots=least,
    )


def format_shareable_summary(
    title: str,
    start_date: str,
    end_date: str,
    summary: ParticipationSummary,
    formatter: DateFormatterPort,
    top_n: int = 3,
) -> str:
    """Plain-text summary for sharing. Same input, same text."""
    lines = [
        title,
        "",
        formatter.format_date_range(start_date, end_date),
        f"Responses: {summary.responded_count}/{summary.total_participants} "
        f"({summary.response_percent}%)",
        "",
    ]

    top_slots = [s for s in summary.most_popular_slots[:top_n] if s.available_count > 0]
    if top_slots:
        lines.append("Best times:")
        for index, slot in enumerate(top_slots, start=1):
            lines.append(
                f"{index}. {formatter.format_time_slot(slot.time_slot)} "
                f"({slot.available_count}/{summary.responded_count} available)"
            )
    else:
        lines.append("No common times yet.")

    return "\n".join(lines)
