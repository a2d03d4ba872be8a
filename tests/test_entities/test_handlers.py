"""Tests for entity payload handlers."""

import pytest

from entity_webhooks.entities.base import RestRoute, normalize_entity_id
from entity_webhooks.entities.meta import MetaHandler, is_empty_value, values_equal
from entity_webhooks.entities.post import PostHandler
from entity_webhooks.entities.term import TermHandler
from entity_webhooks.entities.user import UserHandler
from entity_webhooks.hooks import HookPoint, HookRegistry


class TestRestRoute:
    """Tests for RestRoute."""

    def test_path_uses_rest_base(self):
        """Test the route base replaces the kind name."""
        assert RestRoute(show_in_rest=True, rest_base="products").path_for("product", 42) == "wp/v2/products/42"

    def test_path_defaults(self):
        """Test kind name and default namespace are used when unset."""
        assert RestRoute(show_in_rest=True).path_for("page", 3) == "wp/v2/page/3"

    def test_custom_namespace(self):
        """Test a custom namespace."""
        route = RestRoute(show_in_rest=True, rest_base="items", rest_namespace="shop/v1")
        assert route.path_for("item", 1) == "shop/v1/items/1"


class TestNormalizeEntityId:
    """Tests for normalize_entity_id."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(42, 42), ("42", 42), (0, None), (-1, None), ("", None), ("abc", None), ("0", None), (True, None)],
    )
    def test_normalize(self, raw, expected):
        """Test only positive integers survive."""
        assert normalize_entity_id(raw) == expected


# ============================================================================
# Post Handler Tests
# ============================================================================


class TestPostHandler:
    """Tests for PostHandler."""

    def test_schedule_payload_is_empty(self, source):
        """Test nothing is captured at schedule time."""
        assert PostHandler(source).prepare_payload(42) == {}

    def test_delivery_adds_type_and_rest_url(self, source):
        """Test delivery-time enrichment from the content source."""
        payload = PostHandler(source).prepare_delivery_payload(42, {"price": 10})

        assert payload == {
            "price": 10,
            "post_type": "product",
            "rest_url": "https://site.test/wp-json/wp/v2/products/42",
        }

    def test_type_from_payload_wins(self, source):
        """Test a captured post type is used without a lookup."""
        source.post_types.clear()

        payload = PostHandler(source).prepare_delivery_payload(42, {"post_type": "product"})

        assert payload["rest_url"].endswith("/products/42")

    def test_missing_post_unchanged(self, source):
        """Test a deleted post leaves the payload untouched."""
        assert PostHandler(source).prepare_delivery_payload(99, {"a": 1}) == {"a": 1}

    def test_type_without_rest_gets_no_url(self, source):
        """Test types hidden from REST get no URL."""
        source.post_types[5] = "private_note"

        payload = PostHandler(source).prepare_delivery_payload(5, {})

        assert payload == {"post_type": "private_note"}

    def test_existing_rest_url_kept(self, source):
        """Test a captured REST URL is not recomputed."""
        payload = PostHandler(source).prepare_delivery_payload(42, {"rest_url": "https://cached"})
        assert payload["rest_url"] == "https://cached"

    def test_without_source(self):
        """Test a handler without a content source is the identity."""
        assert PostHandler().prepare_delivery_payload(42, {"a": 1}) == {"a": 1}


class TestTermHandler:
    """Tests for TermHandler."""

    def test_schedule_payload_has_taxonomy(self, source):
        """Test the taxonomy is captured at schedule time."""
        assert TermHandler(source).prepare_payload(3) == {"taxonomy": "category"}

    def test_schedule_payload_missing_term(self, source):
        """Test a missing term gives an empty payload."""
        assert TermHandler(source).prepare_payload(99) == {}

    def test_delivery_adds_rest_url(self, source):
        """Test the REST URL is added at delivery time."""
        payload = TermHandler(source).prepare_delivery_payload(3, {"taxonomy": "category"})
        assert payload["rest_url"] == "https://site.test/wp-json/wp/v2/categories/3"

    def test_delivery_looks_up_taxonomy(self, source):
        """Test the taxonomy is looked up when the payload lacks it."""
        payload = TermHandler(source).prepare_delivery_payload(3, {})
        assert payload["rest_url"].endswith("/categories/3")

    def test_unknown_taxonomy_unchanged(self, source):
        """Test taxonomies without a route get no URL."""
        assert TermHandler(source).prepare_delivery_payload(3, {"taxonomy": "secret"}) == {"taxonomy": "secret"}


class TestUserHandler:
    """Tests for UserHandler."""

    def test_schedule_payload(self, source):
        """Test roles and REST URL are captured at schedule time."""
        assert UserHandler(source).prepare_payload(7) == {
            "roles": ["editor"],
            "rest_url": "https://site.test/wp-json/wp/v2/users/7",
        }

    def test_missing_user_has_no_roles(self, source):
        """Test a missing user reports no roles."""
        assert UserHandler(source).prepare_payload(99)["roles"] == []

    def test_delivery_is_identity(self, source):
        """Test user payloads are not changed at delivery time."""
        assert UserHandler(source).prepare_delivery_payload(7, {"roles": []}) == {"roles": []}


# ============================================================================
# Meta Handler Tests
# ============================================================================


class TestIsEmptyValue:
    """Tests for is_empty_value."""

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, "", "0", [], {}, ()])
    def test_empty(self, value):
        """Test values that count as empty."""
        assert is_empty_value(value) is True

    @pytest.mark.parametrize("value", ["a", "00", 1, True, [0], {"a": None}, " "])
    def test_not_empty(self, value):
        """Test values that are set."""
        assert is_empty_value(value) is False


class TestValuesEqual:
    """Tests for values_equal."""

    @pytest.mark.parametrize(
        ("new", "old"),
        [
            ("10", 10),
            (10, "10.0"),
            ("1e1", "10"),
            (" 5", 5),
            ("", None),
            (None, 0),
            (True, "yes"),
            (False, "0"),
            ("abc", "abc"),
            ([1, 2], [1, 2]),
        ],
    )
    def test_equal(self, new, old):
        """Test values that count as unchanged."""
        assert values_equal(new, old) is True

    @pytest.mark.parametrize(
        ("new", "old"),
        [
            ("10", 11),
            ("abc", 0),
            ("0", None),
            ("10", "10a"),
            ("1.5", 1),
            (True, ""),
            ([1], ["1"]),
            ({"a": 1}, "a"),
        ],
    )
    def test_not_equal(self, new, old):
        """Test values that count as changed."""
        assert values_equal(new, old) is False


class TestMetaHandler:
    """Tests for MetaHandler."""

    def test_deletion_detection(self):
        """Test a write of an empty value over a set one is a deletion."""
        handler = MetaHandler()

        assert handler.is_deletion("", "old") is True
        assert handler.is_deletion(None, 5) is True
        assert handler.is_deletion("new", "old") is False
        assert handler.is_deletion("", None) is False

    @pytest.mark.parametrize("key", ["_edit_lock", "_edit_last", "session_tokens", "_private"])
    def test_excluded_keys(self, key):
        """Test internal and underscore keys are excluded."""
        assert MetaHandler().is_meta_key_excluded(key, "post", 42) is True

    def test_regular_key_included(self):
        """Test ordinary keys are emitted."""
        assert MetaHandler().is_meta_key_excluded("price", "post", 42) is False

    def test_exclusion_hook(self):
        """Test the exclusion hook has the final say."""
        hooks = HookRegistry()
        calls = []

        def exclude_price(excluded, key, meta_type, object_id):
            calls.append((key, meta_type, object_id))
            return excluded or key == "price"

        hooks.add(HookPoint.EXCLUDED_META, exclude_price)
        handler = MetaHandler(hooks=hooks)

        assert handler.is_meta_key_excluded("price", "post", 42) is True
        assert calls == [("price", "post", 42)]

    def test_exclusion_hook_can_include(self):
        """Test the hook can re-include an internal key."""
        hooks = HookRegistry()
        hooks.add(HookPoint.EXCLUDED_META, lambda excluded, key, meta_type, object_id: False)

        assert MetaHandler(hooks=hooks).is_meta_key_excluded("_edit_lock", "post", 42) is False

    def test_schedule_payload(self):
        """Test meta payloads name the owner type and key."""
        assert MetaHandler().prepare_payload("post", 42, "price") == {"meta_type": "post", "meta_key": "price"}

    def test_delivery_routes_by_meta_type(self, source):
        """Test enrichment is delegated to the owner's handler."""
        payload = MetaHandler(source).prepare_delivery_payload(42, {"meta_type": "post", "meta_key": "price"})

        assert payload["post_type"] == "product"
        assert payload["meta_key"] == "price"

    def test_delivery_infers_term_owner(self, source):
        """Test payloads without meta_type are routed by their fields."""
        payload = MetaHandler(source).prepare_delivery_payload(3, {"taxonomy": "category"})

        assert payload["meta_type"] == "term"
        assert payload["rest_url"].endswith("/categories/3")

    def test_delivery_infers_user_owner(self, source):
        """Test a roles field marks a user owner."""
        payload = MetaHandler(source).prepare_delivery_payload(7, {"roles": ["editor"]})
        assert payload["meta_type"] == "user"

    def test_delivery_unknown_owner_unchanged(self, source):
        """Test unknown owner types leave the payload as is."""
        payload = {"meta_type": "comment", "meta_key": "x"}
        assert MetaHandler(source).prepare_delivery_payload(1, payload) == payload

    def test_entity_payload(self, source):
        """Test the owning entity's payload is built by its handler."""
        handler = MetaHandler(source)

        assert handler.get_entity_payload("post", 42) == {}
        assert handler.get_entity_payload("term", 3) == {"taxonomy": "category"}
        assert handler.get_entity_payload("user", 7)["roles"] == ["editor"]
        assert handler.get_entity_payload("comment", 1) == {}
