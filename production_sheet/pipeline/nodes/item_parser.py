"""Node that turns a running-order line into a ProgramItem."""

import logging

from ...exceptions import ValidationError
from ...models.program import ProgramItem
from ...processing.rule_engine import clean_item_text, parse_item_text
from ...utils.error_handling import create_error_response
from ..state import ItemState

logger = logging.getLogger(__name__)


def parse_item(state: ItemState) -> dict:
    """Clean the line and extract its type and performer."""
    try:
        text = clean_item_text(state.get("line", ""))
        if not text:
            raise ValidationError(f"Line {state.get('index')} is empty")

        parsed = parse_item_text(text)
        item = ProgramItem(
            title=text,
            type=parsed.item_type or "",
            performer=parsed.performer or "",
            index=state.get("index", 0),
        )
        logger.debug(f"Parsed line {item.index}: type={item.type!r} performer={item.performer!r}")
        return {"item": item}

    except ValidationError as e:
        logger.warning(f"Skipping line: {e}")
        return create_error_response(e)
