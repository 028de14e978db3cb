from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from domain import ALL_FILTER, CategoryType
from .snapshot import CardPlacement, StudyContent, StudySnapshot


@dataclass(frozen=True)
class SortedCard:
    card_id: str
    participant_id: str
    participant_number: int
    label: str


@dataclass(frozen=True)
class CategoryGroup:
    name: str
    type: CategoryType
    cards: tuple[SortedCard, ...] = ()

    @property
    def card_count(self) -> int:
        return len(self.cards)


def classify(placement: CardPlacement, predefined_names: frozenset[str] | set[str]) -> CategoryType:
    """Predefined only when the name is untouched and belongs to the study's own categories."""
    if (
        placement.original_category_name == placement.category_name
        and placement.category_name in predefined_names
    ):
        return CategoryType.PREDEFINED
    return CategoryType.USER_CREATED


def resolve_placement(placement: CardPlacement, content: StudyContent) -> CardPlacement:
    # Rows written before names were stored only carry the predefined category id.
    category = content.categories_by_id.get(placement.category_id or "")
    if category is None:
        return placement
    return replace(
        placement,
        category_name=placement.category_name or category.name,
        original_category_name=placement.original_category_name or category.name,
    )


def group_by_category(snapshot: StudySnapshot) -> list[CategoryGroup]:
    content = snapshot.content
    predefined_names = content.predefined_names

    types: dict[str, Optional[CategoryType]] = {}
    cards: dict[str, list[SortedCard]] = {}

    # Predefined categories are always listed, even before anyone used them.
    for category in content.categories:
        if category.name in predefined_names and category.name not in cards:
            types[category.name] = None
            cards[category.name] = []

    for participant in snapshot.participants:
        number = snapshot.participant_number(participant.id)
        for raw in participant.card_sort_results:
            placement = resolve_placement(raw, content)
            name = placement.category_name
            if not name:
                continue
            placement_type = classify(placement, predefined_names)
            if name not in cards:
                cards[name] = []
            if types.get(name) is None:
                types[name] = placement_type
            cards[name].append(
                SortedCard(
                    card_id=placement.card_id,
                    participant_id=participant.id,
                    participant_number=number,
                    label=content.card_label(placement.card_id),
                )
            )

    return [
        CategoryGroup(
            name=name,
            type=types[name] or CategoryType.PREDEFINED,
            cards=tuple(group_cards),
        )
        for name, group_cards in cards.items()
    ]


def filter_by_participant(groups: list[CategoryGroup], participant_id: str) -> list[CategoryGroup]:
    if participant_id == ALL_FILTER:
        return list(groups)
    return [
        replace(group, cards=tuple(c for c in group.cards if c.participant_id == participant_id))
        for group in groups
    ]


def filter_by_category_type(
    groups: list[CategoryGroup],
    category_type: CategoryType | str,
) -> list[CategoryGroup]:
    if category_type == ALL_FILTER:
        return list(groups)
    wanted = CategoryType(category_type)
    return [group for group in groups if group.type == wanted]


def build_category_matrix(snapshot: StudySnapshot) -> dict[str, dict[str, str]]:
    """participant id -> card id -> category name, one entry per placed card."""
    matrix: dict[str, dict[str, str]] = {}
    for participant in snapshot.participants:
        row = matrix.setdefault(participant.id, {})
        for placement in participant.card_sort_results:
            name = snapshot.content.placement_category_name(placement)
            if name and placement.card_id not in row:
                row[placement.card_id] = name
    return matrix
