"""Mistake-code categories, derived from the code's leading digit."""
from typing import Dict, Iterable, List, Optional

CATEGORY_OTHER = 5

CATEGORY_KEYS = {
    1: 'category1',
    2: 'category2',
    3: 'category3',
    4: 'category4',
    CATEGORY_OTHER: 'category_other',
}

CATEGORY_LABELS = {
    'category1': 'Category 1',
    'category2': 'Category 2',
    'category3': 'Category 3',
    'category4': 'Category 4',
    'category_other': 'Other',
}


def category_of(code: str) -> Optional[int]:
    """Return 1..5 from the first character of a mistake code, else None."""
    if not code:
        return None
    first = code[0]
    if first in '12345':
        return int(first)
    return None


def bucket_key(code: str) -> str:
    """Bucket name for a code; anything outside 1–4 lands in 'category_other'."""
    category = category_of(code)
    if category is None:
        category = CATEGORY_OTHER
    return CATEGORY_KEYS[category]


def partition_codes(codes: Iterable[str]) -> Dict[str, List[str]]:
    """Split codes into the five buckets, keeping header order within each."""
    buckets: Dict[str, List[str]] = {key: [] for key in CATEGORY_KEYS.values()}
    for code in codes:
        if code:
            buckets[bucket_key(code)].append(code)
    return buckets
