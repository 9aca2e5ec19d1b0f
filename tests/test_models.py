from __future__ import annotations

import pytest
from pydantic import ValidationError

from fakes import evaluation_payload
from ragchat.catalog import PRODUCT_AREAS, resolve_option
from ragchat.models import EvaluationResult, Message, QueryFilters, new_message_id


def test_message_ids_are_unique_and_ordered() -> None:
    ids = [new_message_id() for _ in range(500)]
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)


def test_messages_are_immutable() -> None:
    message = Message.user("hello")
    with pytest.raises(ValidationError):
        message.text = "changed"


def test_filters_payload_omits_empty_values() -> None:
    assert QueryFilters().to_payload() is None
    assert QueryFilters(product_area="", section="").empty
    assert QueryFilters(product_area="HR Operations").to_payload() == {
        "product_area": "HR Operations"
    }


def test_verdict_is_open_string() -> None:
    reliable = EvaluationResult.model_validate(evaluation_payload(verdict="RELIABLE"))
    other = EvaluationResult.model_validate(evaluation_payload(verdict="PARTIALLY_SUPPORTED"))
    assert reliable.is_reliable
    assert not other.is_reliable
    assert other.verdict == "PARTIALLY_SUPPORTED"


def test_resolve_option_matches_catalog() -> None:
    assert resolve_option("hr operations", PRODUCT_AREAS) == "HR Operations"
    assert resolve_option("", PRODUCT_AREAS) is None
    assert resolve_option(None, PRODUCT_AREAS) is None
    with pytest.raises(ValueError):
        resolve_option("Spaceflight", PRODUCT_AREAS)
