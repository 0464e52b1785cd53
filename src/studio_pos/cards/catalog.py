from __future__ import annotations

from typing import Sequence

from ..core.constants import ADMIN_PASS_CARD_NAME
from ..core.exceptions import ValidationError
from .model import CardType
from .repository import CardTypeRepository


class CardCatalogService:
    """Use case: read the card products on sale."""

    def __init__(self, card_types: CardTypeRepository):
        self._card_types = card_types

    def list_card_types(self) -> Sequence[CardType]:
        return self._card_types.list_active()

    def list_for_sale(self) -> Sequence[CardType]:
        """Active products customers can buy (the admin pass type is internal)."""

        return [t for t in self._card_types.list_active() if t.name != ADMIN_PASS_CARD_NAME]

    def get_card_type(self, card_type_id: int) -> CardType:
        card_type = self._card_types.get_by_id(int(card_type_id))
        if not card_type or not card_type.is_active:
            raise ValidationError("Invalid card type")
        return card_type

    def admin_pass_type(self) -> CardType:
        """Card type used for manually issued passes.

        Prefers the dedicated "Admin Pass" product, otherwise any punch card.
        """

        types = [t for t in self._card_types.list_active() if not t.is_subscription]
        for t in types:
            if t.name == ADMIN_PASS_CARD_NAME:
                return t
        if not types:
            raise ValidationError("No punch card type is configured for admin passes")
        return types[0]

    def get_for_sale(self, card_type_id: int) -> CardType:
        card_type = self.get_card_type(card_type_id)
        if card_type.name == ADMIN_PASS_CARD_NAME:
            raise ValidationError("Invalid card type")
        return card_type
