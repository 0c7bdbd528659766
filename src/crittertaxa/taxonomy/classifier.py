"""Derive a species' group name by climbing its ancestor chain.

The climb starts from ``Unspecified`` and visits ancestors root-first. Each
ancestor may replace the current group depending on its rank, the variant of
the group found so far (the guard), and the override policy. The guards are not
symmetric between neighbouring ranks.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from crittertaxa.taxonomy.exceptions import TaxonomyError
from crittertaxa.taxonomy.group_name import GroupName, GroupRank

if TYPE_CHECKING:
    from crittertaxa.config.models import CritterCategoryConfig
    from crittertaxa.taxonomy.cache import TaxonCache
    from crittertaxa.taxonomy.models import Taxon

logger = logging.getLogger(__name__)

R = GroupRank


@dataclass(frozen=True)
class RankRule:
    """How an ancestor of a given rank may refine the current group."""

    produces: GroupRank
    after: frozenset[GroupRank] | None = None  # None: applies after anything
    overridable: bool = True
    ignorable: bool = False


RANK_RULES: dict[str, RankRule] = {
    "phylum": RankRule(R.PHYLUM, overridable=False),
    "subphylum": RankRule(R.SUBPHYLUM, overridable=False),
    "class": RankRule(R.CLASS, ignorable=True),
    "subclass": RankRule(R.SUBCLASS, frozenset({R.PHYLUM, R.CLASS})),
    "infraclass": RankRule(R.INFRACLASS, frozenset({R.PHYLUM, R.CLASS, R.SUBCLASS})),
    "superorder": RankRule(
        R.SUPERORDER, frozenset({R.PHYLUM, R.CLASS, R.SUBCLASS, R.INFRACLASS})
    ),
    "order": RankRule(
        R.ORDER, frozenset({R.PHYLUM, R.CLASS, R.SUBCLASS, R.INFRACLASS, R.SUPERORDER})
    ),
    "suborder": RankRule(R.SUBORDER, frozenset({R.ORDER})),
    "infraorder": RankRule(
        R.INFRAORDER, frozenset({R.PHYLUM, R.CLASS, R.SUBCLASS, R.SUPERORDER, R.SUBORDER})
    ),
    "superfamily": RankRule(
        R.SUPERFAMILY, frozenset({R.ORDER, R.INFRACLASS, R.SUBCLASS, R.INFRAORDER})
    ),
    "family": RankRule(
        R.FAMILY, frozenset({R.PHYLUM, R.ORDER, R.INFRAORDER, R.SUBCLASS, R.SUPERFAMILY})
    ),
    "subfamily": RankRule(R.SUBFAMILY, frozenset({R.FAMILY})),
    "genus": RankRule(R.GENUS, frozenset({R.SUBFAMILY})),
}

SPECIES_RANK = "species"


def apply_ancestor(group: GroupName, ancestor: Taxon, policy: CritterCategoryConfig) -> GroupName:
    """Return the group after visiting ``ancestor``.

    This is the pure step of the climb; it never touches the network.
    """
    rank = ancestor.rank
    if rank == SPECIES_RANK:
        replacement = policy.renamed(group)
        return GroupName.custom(replacement) if replacement is not None else group

    rule = RANK_RULES.get(rank or "")
    if rule is None:
        return group
    if rule.after is not None and group.rank not in rule.after:
        return group
    if rule.overridable and policy.prefers_higher(group, rank):
        logger.debug("Keeping %r over %s ancestor %s", group, rank, ancestor.name)
        return group

    common_name = ancestor.preferred_common_name
    if not common_name:
        return group
    if rule.ignorable and policy.is_ignored(rank, common_name):
        logger.debug("Ignoring %s common name %r", rank, common_name)
        return group

    return GroupName(rule.produces, common_name)


class GroupNameClassifier:
    """Classifies taxa into group names using cached ancestors and an override policy."""

    def __init__(self, taxon_cache: TaxonCache, policy: CritterCategoryConfig):
        self.taxon_cache = taxon_cache
        self.policy = policy

    async def classify(self, taxon: Taxon, offline: bool = False) -> GroupName:
        """Walk ``taxon``'s ancestors in order and return the resulting group.

        Any failure resolving an ancestor aborts the classification.
        """
        group = GroupName.unspecified()
        for ancestor_id in taxon.ancestor_ids or []:
            ancestor = await self.taxon_cache.get_by_id(ancestor_id, offline=offline)
            group = apply_ancestor(group, ancestor, self.policy)

        logger.debug("Classified %s as %r", taxon.name or taxon.id, group)
        return group

    async def classify_name(self, name: str, offline: bool = False) -> GroupName:
        """Resolve a scientific name through the taxon cache, then classify it."""
        taxon = await self.taxon_cache.get_by_name(name, offline=offline)
        return await self.classify(taxon, offline=offline)

    async def classify_many(
        self, names: Iterable[str], offline: bool = False, concurrency: int = 1
    ) -> dict[str, GroupName | TaxonomyError]:
        """Classify several species, at most ``concurrency`` at a time.

        Each climb stays sequential; parallelism only spans distinct species.

        Returns:
            Mapping of each input name to its group, or to the error that stopped it
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        semaphore = asyncio.Semaphore(concurrency)
        unique_names = list(dict.fromkeys(names))

        async def classify_one(name: str) -> GroupName | TaxonomyError:
            async with semaphore:
                try:
                    return await self.classify_name(name, offline=offline)
                except TaxonomyError as e:
                    logger.warning("Could not classify %r: %s", name, e)
                    return e

        results = await asyncio.gather(*(classify_one(name) for name in unique_names))
        return dict(zip(unique_names, results, strict=True))
