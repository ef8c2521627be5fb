"""Ranking and pagination of scored grants."""

from .ranker import SortBy, rank, sort_results

__all__ = ["SortBy", "rank", "sort_results"]
