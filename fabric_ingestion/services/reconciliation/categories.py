"""Price-per-meter category tiers."""
from typing import List, Optional, Sequence

from fabric_ingestion.models.catalog import CategoryBucket

# (category, price_threshold) used when no buckets are configured
_DEFAULT_TIERS = [
    (1, 550), (2, 650), (3, 800), (4, 1000),
    (5, 1250), (6, 1550), (7, 1900), (8, 2300),
    (9, 2750), (10, 3250), (11, 3800), (12, 4400),
    (13, 5050), (14, 5750), (15, 6500), (16, 7300),
]

DEFAULT_CATEGORIES: List[CategoryBucket] = [
    CategoryBucket(category=category, price_threshold=threshold)
    for category, threshold in _DEFAULT_TIERS
]


def category_for_price_per_meter(
    price_per_meter: Optional[float],
    buckets: Optional[Sequence[CategoryBucket]] = None,
) -> Optional[int]:
    """Pick the category for a price per meter.

    Buckets are ordered by threshold. The first bucket takes
    ``0 < ppm <= t``, a middle bucket takes ``prev < ppm <= t`` and the top
    bucket is open-ended (``ppm >= t``). Anything left over lands in the top
    category.
    """
    if price_per_meter is None or price_per_meter <= 0:
        return None
    ordered = sorted(buckets or DEFAULT_CATEGORIES, key=lambda bucket: bucket.price_threshold)
    last = len(ordered) - 1
    previous = 0.0
    for index, bucket in enumerate(ordered):
        threshold = bucket.price_threshold
        if index == 0:
            if 0 < price_per_meter <= threshold:
                return bucket.category
        elif index == last:
            if price_per_meter >= threshold:
                return bucket.category
        elif previous < price_per_meter <= threshold:
            return bucket.category
        previous = threshold
    return ordered[-1].category
