"""Grant discovery: dedupe, eligibility, scoring and ranking of grants for a profile."""

__version__ = "0.1.0"
