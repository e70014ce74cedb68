"""Category, exclusion and sort-rank lookups for sites.

The category sort configuration is an ordered list of categories, each with
an ordered list of member sites. ``SiteClassifier`` flattens it into lookup
tables keyed by site id. Exclusion is answered by ``is_excluded``, which
checks the site's own flag and then whether its category is excluded; the
category part is not copied into the per-site set.
"""

from __future__ import annotations

from typing import Dict, Iterable, NamedTuple, Optional, Set, Tuple

from .models import UNCATEGORIZED, CategorySortEntry

UNRANKED = 9999


class SiteCategory(NamedTuple):
    category_id: Optional[str]
    category_name: str


class SiteRank(NamedTuple):
    category_order: int
    site_order: int


UNRANKED_SITE = SiteRank(UNRANKED, UNRANKED)


class SiteClassifier:
    """Lookup tables derived from a ``categories_sort`` configuration."""

    def __init__(self, categories: Optional[Iterable[CategorySortEntry]] = None) -> None:
        self.site_to_category: Dict[str, SiteCategory] = {}
        self.site_order: Dict[str, SiteRank] = {}
        self.excluded_sites: Set[str] = set()
        self.excluded_categories: Set[str] = set()
        # Excluded categories without an id, by position in the configuration.
        self.excluded_positions: Set[int] = set()

        for cat_index, category in enumerate(categories or ()):
            if category.excluded:
                if category.id:
                    self.excluded_categories.add(category.id)
                else:
                    self.excluded_positions.add(cat_index)
            for site_index, site in enumerate(category.sites):
                if not site.site_id:
                    continue
                self.site_to_category[site.site_id] = SiteCategory(category.id, category.name)
                self.site_order[site.site_id] = SiteRank(cat_index, site_index)
                if site.excluded:
                    self.excluded_sites.add(site.site_id)

    def is_excluded(self, site_id: str) -> bool:
        """Return True if the site or the category it belongs to is excluded."""
        if site_id in self.excluded_sites:
            return True
        category = self.site_to_category.get(site_id)
        if category is None:
            return False
        if category.category_id:
            return category.category_id in self.excluded_categories
        return self.site_order[site_id].category_order in self.excluded_positions

    def category_name(self, site_id: str) -> str:
        category = self.site_to_category.get(site_id)
        if category is None:
            return UNCATEGORIZED
        return category.category_name

    def rank(self, site_id: str) -> SiteRank:
        return self.site_order.get(site_id, UNRANKED_SITE)

    @property
    def has_ranks(self) -> bool:
        return bool(self.site_order)

    def sort_key(self, site_id: str) -> Tuple[int, int, str]:
        category_order, site_order = self.rank(site_id)
        return category_order, site_order, site_id.lower()
