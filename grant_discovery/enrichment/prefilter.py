"""Heuristic pre-filter applied before spending AI calls on a grant."""

from typing import List

from ..models import Grant

# Institutional programs ordinary applicants cannot realistically pursue
HARD_REJECT_TERMS = [
    "clinical trial",
    "drug development",
    "cancer research center",
    "genome sequencing",
    "national laboratory",
    "defense contract",
    "foreign assistance",
    "international development program",
    "research institution only",
    "university-affiliated",
    "phase i study",
    "phase ii study",
    "phase iii study",
]

INSTITUTIONAL_MIN_AMOUNT = 5_000_000


def is_accessible(grant: Grant) -> bool:
    combined = " ".join([grant.title, grant.sponsor, grant.summary or ""]).lower()
    if any(term in combined for term in HARD_REJECT_TERMS):
        return False
    if grant.amount_min is not None and grant.amount_min > INSTITUTIONAL_MIN_AMOUNT:
        return False
    return True


def prefilter_for_accessibility(grants: List[Grant]) -> List[Grant]:
    """Drop obviously institutional grants. Order is preserved.

    Only decides who gets enriched; filtered grants stay in the results.
    """
    return [g for g in grants if is_accessible(g)]
