"""
Match Resolution Policy

Turns the classifier's candidate list into at most one guest identity.

Rules:
- exactly one "high" candidate wins, whatever else is listed
- two or more "high" candidates is ambiguous and resolves to nobody
- with no "high", exactly one "medium" candidate wins
- "low" candidates are never accepted
- the accepted name must appear verbatim exactly once on the roster
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from bouncer.models.guest import Guest, MatchCandidate, MatchResult

logger = logging.getLogger(__name__)

NO_MATCH = "No Match"


def _roster_index(roster: List[Guest]) -> Dict[str, Guest]:
    index: Dict[str, Guest] = {}
    for guest in roster:
        index.setdefault(guest.name, guest)
    return index


def select_candidate(result: Optional[MatchResult]) -> Optional[MatchCandidate]:
    if result is None or not result.matches:
        return None

    high = [m for m in result.matches if m.confidence == "high"]
    medium = [m for m in result.matches if m.confidence == "medium"]

    if len(high) == 1:
        return high[0]
    if len(high) > 1:
        logger.debug(f"[resolve] {len(high)} high-confidence matches, treating as ambiguous")
        return None
    if len(medium) == 1:
        return medium[0]
    if len(medium) > 1:
        logger.debug(f"[resolve] {len(medium)} medium-confidence matches, treating as ambiguous")
    else:
        logger.debug("[resolve] Only low-confidence matches")
    return None


def resolve_identity(result: Optional[MatchResult], roster: List[Guest]) -> Optional[Guest]:
    """Return the roster guest the plea can be attributed to, or None."""
    candidate = select_candidate(result)
    if candidate is None:
        return None

    entries = [g for g in roster if g.name == candidate.guest_name]
    if not entries:
        logger.warning(f"[resolve] Accepted candidate {candidate.guest_name!r} is not on the roster")
        return None
    if len(entries) > 1:
        logger.warning(
            f"[resolve] Accepted candidate {candidate.guest_name!r} appears {len(entries)} times on the roster"
        )
        return None

    guest = entries[0]
    logger.debug(f"[resolve] Resolved to {guest.name} ({candidate.confidence} confidence)")
    return guest


def _display_status(candidate: MatchCandidate, index: Dict[str, Guest]) -> Optional[str]:
    guest = index.get(candidate.guest_name)
    if guest is not None and guest.status:
        return guest.status
    status = getattr(candidate.guest, "status", None)
    return status or None


def summarize_matches(result: Optional[MatchResult], roster: List[Guest]) -> str:
    """Long-form summary for the host email."""
    if result is None or not result.matches:
        return NO_MATCH

    index = _roster_index(roster)

    def describe(candidate: MatchCandidate) -> str:
        status = _display_status(candidate, index)
        status_text = f" ({status})" if status else ""
        return f"{candidate.guest_name}{status_text} - {candidate.confidence}"

    if len(result.matches) == 1:
        return f"{describe(result.matches[0])} confidence"

    listed = ", ".join(describe(m) for m in result.matches)
    return f"Multiple matches ({len(result.matches)}): {listed}"


def summarize_matches_short(result: Optional[MatchResult]) -> str:
    """One-line summary for the host SMS."""
    if result is None or not result.matches:
        return "None"
    if len(result.matches) == 1:
        match = result.matches[0]
        return f"{match.guest_name} ({match.confidence})"
    return f"{len(result.matches)} matches - see email"
