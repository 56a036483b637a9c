"""Tests for structured logging helpers."""

import structlog

from gifcatalog.config import Settings
from gifcatalog.core.logging import actor_context, actor_id_ctx, add_context_info, configure_logging, get_logger


def test_add_context_info_without_actor() -> None:
    event = add_context_info(None, "info", {"event": "item_ingested"})

    assert "actor_id" not in event


def test_actor_context_tags_events() -> None:
    with actor_context(1001):
        event = add_context_info(None, "info", {"event": "item_ingested"})

    assert event["actor_id"] == 1001
    assert actor_id_ctx.get() is None


def test_actor_context_nesting_restores_outer_actor() -> None:
    with actor_context(1001):
        with actor_context(2001):
            assert actor_id_ctx.get() == 2001
        assert actor_id_ctx.get() == 1001


def test_explicit_actor_id_is_not_overwritten() -> None:
    with actor_context(1001):
        event = add_context_info(None, "info", {"event": "x", "actor_id": 7})

    assert event["actor_id"] == 7


def test_configure_logging_json_output() -> None:
    configure_logging(Settings(_env_file=None, ENVIRONMENT="production", LOG_FORMAT="json"))
    try:
        with structlog.testing.capture_logs() as logs:
            get_logger("gifcatalog.test").info("tag_created", tag="fox")
    finally:
        structlog.reset_defaults()

    assert logs == [{"event": "tag_created", "tag": "fox", "log_level": "info"}]
