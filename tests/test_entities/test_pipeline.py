"""Tests for the enrichment pipeline and object references."""

import pytest

from entity_webhooks.entities.base import EntityHandler
from entity_webhooks.entities.pipeline import EnrichmentPipeline
from entity_webhooks.entities.post import PostHandler
from entity_webhooks.support.object_ids import parse_object_id


class TestEnrichmentPipeline:
    """Tests for EnrichmentPipeline."""

    def test_routes_by_entity_type(self, source):
        """Test each entity type reaches its handler."""
        pipeline = EnrichmentPipeline(source)

        assert pipeline.enrich("post", 42, {})["post_type"] == "product"
        assert pipeline.enrich("term", "3", {})["rest_url"].endswith("/categories/3")
        assert pipeline.enrich("meta", 42, {"meta_type": "post"})["post_type"] == "product"

    def test_unknown_entity_type_unchanged(self, source):
        """Test unknown entity types pass through."""
        assert EnrichmentPipeline(source).enrich("comment", 1, {"a": 1}) == {"a": 1}

    @pytest.mark.parametrize("entity_id", [0, -5, "abc", ""])
    def test_invalid_id_unchanged(self, source, entity_id):
        """Test invalid IDs skip enrichment."""
        assert EnrichmentPipeline(source).enrich("post", entity_id, {"a": 1}) == {"a": 1}

    def test_register_custom_handler(self, source):
        """Test a custom handler can be added for a new entity type."""

        class OrderHandler(EntityHandler):
            entity_type = "order"

            def prepare_delivery_payload(self, entity_id, payload):
                return {**payload, "order_number": f"#{entity_id}"}

        pipeline = EnrichmentPipeline(source)
        pipeline.register("order", OrderHandler(source))

        assert pipeline.enrich("order", 9, {}) == {"order_number": "#9"}

    def test_handler_for(self, source):
        """Test handler lookup."""
        pipeline = EnrichmentPipeline(source)

        assert isinstance(pipeline.handler_for("post"), PostHandler)
        assert pipeline.handler_for("meta") is pipeline.meta
        assert pipeline.handler_for("comment") is None


class TestParseObjectId:
    """Tests for parse_object_id."""

    @pytest.mark.parametrize(
        ("ref", "expected"),
        [
            (12, ("post", 12)),
            ("12", ("post", 12)),
            ("post_12", ("post", 12)),
            ("term_3", ("term", 3)),
            ("user_7", ("user", 7)),
            ("options", (None, None)),
            ("comment_5", (None, None)),
            ("user_", (None, None)),
            (True, (None, None)),
        ],
    )
    def test_parse(self, ref, expected):
        """Test supported and unsupported references."""
        assert parse_object_id(ref) == expected
