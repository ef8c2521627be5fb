"""Controlled vocabulary for entity types and industries.

Maps the free-form language grants use (eligibility tags, categories, titles)
onto the profile's entity type and industry tags.
"""

import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from .models.profile import EntityType

# Grant eligibility tags each entity type qualifies under
ENTITY_TO_ELIGIBILITY_TAGS: Dict[EntityType, List[str]] = {
    EntityType.INDIVIDUAL: ["Individual", "Homeowner"],
    EntityType.NONPROFIT: ["Nonprofit", "Nonprofit 501(c)(3)", "Non-Profit", "Faith-Based"],
    EntityType.SMALL_BUSINESS: [
        "Small Business",
        "For-Profit",
        "For-Profit Business",
        "Agricultural Producer",
        "Farmer",
        "Rancher",
        "Beginning Farmer",
    ],
    EntityType.FOR_PROFIT: ["For-Profit", "For-Profit Business", "Small Business", "Business"],
    EntityType.EDUCATIONAL: [
        "Educational Institution",
        "Higher Education",
        "University",
        "School District",
        "Nonprofit",
    ],
    EntityType.GOVERNMENT: [
        "Government",
        "Government Entity",
        "State Government",
        "Local Government",
        "Municipal",
    ],
    EntityType.TRIBAL: ["Tribal", "Tribal Organization", "Tribal Government", "Native American"],
    EntityType.COOPERATIVE: ["Cooperative", "Nonprofit", "Agricultural Producer"],
    EntityType.MUNICIPALITY: [
        "Municipal",
        "Local Government",
        "Government Entity",
        "Public Housing Authority",
    ],
}

# Tags that declare no restriction at all
OPEN_ELIGIBILITY_TAGS = {"all", "any", "anyone", "open to all", "unrestricted", "everyone"}

INDUSTRY_KEYWORDS: Dict[str, List[str]] = {
    "agriculture": [
        "agriculture", "agricultural", "farm", "farmer", "farming", "ranch", "rancher",
        "rural development", "rural business", "crop", "crops", "livestock", "poultry",
        "usda", "food production", "agribusiness", "soil", "irrigation", "dairy",
        "farmland", "beginning farmer", "food security", "orchard", "aquaculture",
        "forestry", "timber", "pollinator", "cooperative extension", "nrcs",
    ],
    "arts_culture": [
        "arts", "art", "culture", "cultural", "museum", "heritage", "creative", "humanities",
        "artistic", "theater", "theatre", "music", "visual arts", "performing arts",
        "nea", "neh", "gallery", "exhibition", "literary", "dance", "film",
        "preservation", "historic",
    ],
    "business": [
        "business", "entrepreneur", "commerce", "economic development", "sbir", "sttr",
        "small business", "startup", "commercialization", "sba", "export", "trade",
        "manufacturing", "enterprise", "venture", "minority business", "women-owned",
        "veteran-owned",
    ],
    "climate": [
        "climate", "environment", "environmental", "energy", "conservation", "sustainability",
        "epa", "renewable", "clean energy", "carbon", "emissions", "solar",
        "wind energy", "recycling", "pollution", "water quality", "air quality",
        "ecosystem", "habitat", "resilience", "electric vehicle",
    ],
    "community": [
        "community development", "community service", "neighborhood", "civic",
        "regional development", "block grant", "cdbg", "municipal", "revitalization",
        "main street", "community foundation", "community action",
    ],
    "education": [
        "education", "school", "learning", "training", "academic", "student",
        "teacher", "curriculum", "educational", "k-12", "higher education", "university",
        "college", "literacy", "stem", "scholarship", "early childhood", "preschool",
    ],
    "health": [
        "health", "medical", "wellness", "nih", "clinical", "disease", "mental health",
        "healthcare", "hospital", "patient", "treatment", "nursing", "public health",
        "medicine", "behavioral health", "substance abuse", "telehealth", "hrsa",
        "nutrition",
    ],
    "housing": [
        "housing", "hud", "shelter", "homelessness", "affordable housing", "rent",
        "mortgage", "homeowner", "residential", "home repair", "weatherization",
        "fair housing", "multifamily",
    ],
    "infrastructure": [
        "infrastructure", "transportation", "broadband", "water system", "transit",
        "highway", "bridge", "road", "utility", "sewer", "electric grid", "fiber",
        "wastewater", "stormwater", "public works",
    ],
    "nonprofit": [
        "nonprofit", "non-profit", "charitable", "philanthropy", "501(c)", "ngo",
        "foundation", "tax-exempt", "capacity building",
    ],
    "research": [
        "research", "science", "nsf", "study", "r&d", "scientific", "laboratory",
        "basic research", "applied research", "innovation", "discovery", "darpa",
    ],
    "technology": [
        "technology", "tech", "digital", "software", "cyber", "artificial intelligence",
        "data", "computing", "information technology", "internet", "telecommunications",
        "innovation", "ai", "machine learning", "cybersecurity", "cloud",
    ],
    "workforce": [
        "workforce", "job training", "employment", "career", "labor", "worker",
        "apprenticeship", "vocational", "skills training", "job placement",
        "wioa", "workforce development", "career pathways",
    ],
    "youth": [
        "youth", "children", "child", "family", "families", "juvenile", "teen",
        "adolescent", "young people", "kids", "afterschool", "after-school",
        "mentoring", "foster", "child welfare", "head start",
    ],
}

# Grants mentioning these (and none of the positive keywords) belong elsewhere
INDUSTRY_EXCLUSION_KEYWORDS: Dict[str, List[str]] = {
    "agriculture": [
        "cancer treatment", "chemotherapy", "oncology", "clinical trial", "drug development",
        "patient care", "surgery", "psychiatric", "cybersecurity", "video game",
        "mobile app", "museum exhibit", "art gallery", "symphony", "opera",
        "urban renewal", "subway system", "weapons system", "missile defense",
    ],
    "health": [
        "crop production", "livestock management", "farm equipment", "irrigation system",
        "timber harvest", "mining operation", "coal mining", "road construction",
        "highway maintenance",
    ],
    "technology": [
        "livestock", "crop yield", "farm equipment", "agricultural production",
        "nursing home", "patient care facility", "art installation",
    ],
    "arts_culture": [
        "clinical trial", "drug development", "medical device", "farm equipment",
        "livestock", "crop production", "road construction", "water treatment",
    ],
}

CATEGORY_TO_INDUSTRY: Dict[str, List[str]] = {
    "agriculture": ["agriculture"],
    "agriculture & food": ["agriculture"],
    "rural development": ["agriculture", "community"],
    "arts": ["arts_culture"],
    "arts & culture": ["arts_culture"],
    "humanities": ["arts_culture"],
    "cultural heritage": ["arts_culture"],
    "business": ["business"],
    "business & entrepreneurship": ["business"],
    "small business": ["business"],
    "economic development": ["business", "community"],
    "commerce": ["business"],
    "environment": ["climate"],
    "climate": ["climate"],
    "climate & environment": ["climate"],
    "energy": ["climate"],
    "conservation": ["climate", "agriculture"],
    "sustainability": ["climate"],
    "community development": ["community"],
    "community": ["community"],
    "education": ["education"],
    "training": ["education", "workforce"],
    "academic": ["education", "research"],
    "health": ["health"],
    "health & wellness": ["health"],
    "healthcare": ["health"],
    "public health": ["health"],
    "mental health": ["health"],
    "housing": ["housing"],
    "affordable housing": ["housing"],
    "infrastructure": ["infrastructure"],
    "transportation": ["infrastructure"],
    "broadband": ["infrastructure", "technology"],
    "nonprofit": ["nonprofit"],
    "philanthropy": ["nonprofit"],
    "research": ["research"],
    "research & science": ["research"],
    "science": ["research"],
    "innovation": ["research", "technology"],
    "technology": ["technology"],
    "technology & innovation": ["technology"],
    "cybersecurity": ["technology"],
    "workforce": ["workforce"],
    "workforce development": ["workforce"],
    "employment": ["workforce"],
    "job training": ["workforce"],
    "youth": ["youth"],
    "youth & families": ["youth"],
    "children": ["youth"],
    "families": ["youth"],
}

INDUSTRY_LABELS: Dict[str, str] = {
    "agriculture": "Agriculture & Farming",
    "arts_culture": "Arts & Culture",
    "business": "Business & Entrepreneurship",
    "climate": "Climate & Environment",
    "community": "Community Development",
    "education": "Education",
    "health": "Health & Wellness",
    "housing": "Housing",
    "infrastructure": "Infrastructure",
    "nonprofit": "Nonprofit Operations",
    "research": "Research & Science",
    "technology": "Technology & Innovation",
    "workforce": "Workforce Development",
    "youth": "Youth & Families",
}

_SEPARATORS = re.compile(r"[-_\s]+")


def normalize_term(value: str) -> str:
    """Lower-case and collapse hyphens, underscores and whitespace to single spaces."""
    return _SEPARATORS.sub(" ", value.strip().lower()).strip()


def contains_term(haystack: str, needle: str) -> bool:
    """Case-insensitive containment, either direction.

    The reverse direction (haystack inside needle) needs at least three
    characters so stray abbreviations do not match everything.
    """
    if not haystack or not needle:
        return False
    if needle in haystack:
        return True
    return len(haystack) >= 3 and haystack in needle


@lru_cache(maxsize=1024)
def _keyword_pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword.lower()) + r"(?![a-z0-9])")


def count_keyword_matches(text: str, keywords: Iterable[str]) -> int:
    """Number of distinct keywords appearing as whole words in text."""
    text_lower = (text or "").lower()
    return sum(1 for kw in set(keywords) if _keyword_pattern(kw).search(text_lower))


def resolve_industry(tag: str) -> Optional[str]:
    """Canonical industry key for a profile tag or label, if the tag is one we know."""
    normalized = normalize_term(tag)
    key = normalized.replace(" ", "_")
    if key in INDUSTRY_KEYWORDS:
        return key
    for industry, label in INDUSTRY_LABELS.items():
        if normalize_term(label) == normalized:
            return industry
    return None


def entity_eligibility_tags(entity_type: EntityType) -> List[str]:
    """Normalized grant tags the entity type qualifies under, including its own name."""
    tags = [normalize_term(t) for t in ENTITY_TO_ELIGIBILITY_TAGS.get(entity_type, [])]
    own = normalize_term(entity_type.value)
    if own not in tags:
        tags.append(own)
    return tags


def is_open_eligibility(tags: Iterable[str]) -> bool:
    """True when the tag list declares no restriction."""
    normalized = [normalize_term(t) for t in tags if t and t.strip()]
    return not normalized or any(t in OPEN_ELIGIBILITY_TAGS for t in normalized)


def find_semantic_matches(tag: str, terms: Iterable[str], text: str = "") -> List[str]:
    """Grant terms (categories, eligibility tags) that match one profile industry tag.

    Args:
        tag: Profile industry tag, free text or canonical
        terms: Grant categories and eligibility tags
        text: Title/sponsor/summary text checked for industry keywords

    Returns:
        Matching grant terms; the tag itself when only the text matched
    """
    normalized_tag = normalize_term(tag)
    if not normalized_tag:
        return []

    industry = resolve_industry(tag)
    aliases = [normalize_term(k) for k in INDUSTRY_KEYWORDS.get(industry, [])] if industry else []
    matches: List[str] = []

    for term in terms:
        normalized = normalize_term(term)
        if not normalized:
            continue
        if contains_term(normalized, normalized_tag):
            matches.append(term)
            continue
        if industry is None:
            continue
        if industry in CATEGORY_TO_INDUSTRY.get(normalized, []):
            matches.append(term)
            continue
        if any(_keyword_pattern(alias).search(normalized) for alias in aliases):
            matches.append(term)

    if matches or not text:
        return matches

    # Canonical industries need two keyword hits in running text; a free-text
    # tag needs to appear itself.
    if industry is not None:
        if count_keyword_matches(text, INDUSTRY_KEYWORDS[industry]) >= 2:
            return [tag]
    elif count_keyword_matches(text, [normalized_tag]) >= 1:
        return [tag]
    return []


def has_exclusion_signal(tag: str, text: str) -> bool:
    """True if text carries another industry's markers and none of this tag's own."""
    industry = resolve_industry(tag)
    if industry is None:
        return False
    exclusions = INDUSTRY_EXCLUSION_KEYWORDS.get(industry, [])
    if not exclusions or count_keyword_matches(text, exclusions) == 0:
        return False
    return count_keyword_matches(text, INDUSTRY_KEYWORDS[industry]) == 0


# Award size bands; the top band is open-ended
GRANT_SIZE_RANGES: Dict[str, Tuple[float, float]] = {
    "micro": (0, 10_000),
    "small": (10_000, 50_000),
    "medium": (50_000, 250_000),
    "large": (250_000, float("inf")),
}

# Annual budget range -> grant sizes an organization of that size usually pursues
BUDGET_TO_GRANT_SIZE: Dict[str, List[str]] = {
    "under_50k": ["micro", "small"],
    "50k_100k": ["micro", "small", "medium"],
    "under_100k": ["micro", "small", "medium"],
    "100k_250k": ["small", "medium"],
    "100k_500k": ["small", "medium", "large"],
    "250k_500k": ["small", "medium", "large"],
    "500k_1m": ["medium", "large"],
    "1m_5m": ["medium", "large"],
    "over_5m": ["large"],
}


def size_band_range(sizes: Iterable[str]) -> Optional[Tuple[float, float]]:
    """Union of the named size bands as one (low, high) range."""
    ranges = [GRANT_SIZE_RANGES[s] for s in sizes if s in GRANT_SIZE_RANGES]
    if not ranges:
        return None
    return min(lo for lo, _ in ranges), max(hi for _, hi in ranges)
