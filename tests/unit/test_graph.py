"""
Unit Tests for the In-Memory Graph Store
========================================

Tests InMemoryGraphStore reads, writes, transactions, mutation events and
serialization, plus StoreNodePropertyCache.
"""

import pytest

from lexigraph import (
    Direction,
    InMemoryGraphStore,
    MutationKind,
    NodeNotFoundError,
    StoreNodePropertyCache,
)
from lexigraph.constants import HAS_AFFINITY, HAS_CLASS
from tests.fixtures.sports_corpus import GOAL, PENALTY_KICK, SPORTS, SPORTS_CORPUS


class TestNodes:
    """Tests for node creation and lookup."""

    def test_add_class(self):
        store = InMemoryGraphStore()
        node_id = store.add_class("Sports")
        node = store.get_node(node_id)
        assert node.has_label('Class')
        assert node.get('name') == "Sports"

    def test_add_pattern_defaults_threshold(self):
        store = InMemoryGraphStore()
        node = store.get_node(store.add_pattern("offside"))
        assert node.get('threshold') == 0
        assert node.get('phrase') == "offside"

    def test_ids_allocated_after_explicit_ids(self):
        store = InMemoryGraphStore()
        store.add_class("Sports", node_id=10)
        assert store.add_class("finance") == 11

    def test_duplicate_id_rejected(self):
        store = InMemoryGraphStore()
        store.add_class("Sports", node_id=1)
        with pytest.raises(ValueError):
            store.add_pattern("goal", node_id=1)

    def test_missing_node(self):
        with pytest.raises(NodeNotFoundError) as exc_info:
            InMemoryGraphStore().get_node(3)
        assert exc_info.value.context == {'node_id': 3}

    def test_nodes_with_label_keeps_order(self, sports_store):
        names = [node.get('name') for node in sports_store.nodes_with_label('Class')]
        assert names == ["Sports", "finance", "Politics"]

    def test_find_node(self, sports_store):
        assert sports_store.find_node('Class', 'name', "finance").id == 1
        assert sports_store.find_node('Class', 'name', "Weather") is None

    def test_set_property(self, sports_store):
        sports_store.set_property(GOAL, 'threshold', 1)
        assert sports_store.get_node(GOAL).get('threshold') == 1


class TestRelationships:
    """Tests for edges and traversal."""

    def test_outgoing_and_incoming(self, sports_store):
        outgoing = sports_store.relationships(GOAL, HAS_CLASS, Direction.OUTGOING)
        assert [(r.end_id, r.matches) for r in outgoing] == [(0, 9), (1, 1)]

        incoming = sports_store.relationships(SPORTS, HAS_CLASS, Direction.INCOMING)
        assert [r.start_id for r in incoming] == [10, 11, 15, 16]

    def test_both_directions(self, sports_store):
        from_source = sports_store.relationships(GOAL, HAS_AFFINITY, Direction.BOTH)
        from_target = sports_store.relationships(PENALTY_KICK, HAS_AFFINITY, Direction.BOTH)
        assert [r.other(GOAL) for r in from_source] == [PENALTY_KICK]
        assert [r.other(PENALTY_KICK) for r in from_target] == [GOAL]

    def test_self_loop_listed_once(self, sports_store):
        loop = sports_store.add_affinity(GOAL, GOAL, 2)
        edges = sports_store.relationships(GOAL, HAS_AFFINITY, Direction.BOTH)
        assert [r.id for r in edges].count(loop) == 1
        assert len(edges) == 2

    def test_both_directions_on_busy_node(self):
        """Outgoing edges come first, then incoming, each edge once."""
        store = InMemoryGraphStore()
        hub = store.add_pattern("hub")
        spokes = [store.add_pattern(f"spoke {i}") for i in range(200)]
        for spoke in spokes[:100]:
            store.add_affinity(hub, spoke, 1)
        for spoke in spokes[100:]:
            store.add_affinity(spoke, hub, 1)
        store.add_affinity(hub, hub, 1)

        edges = store.relationships(hub, HAS_AFFINITY, Direction.BOTH)
        assert len(edges) == 201
        assert len({r.id for r in edges}) == 201
        assert [r.other(hub) for r in edges[:100]] == spokes[:100]
        assert [r.other(hub) for r in edges[101:]] == spokes[100:]

    def test_type_filter(self, sports_store):
        assert sports_store.relationships(SPORTS, HAS_AFFINITY, Direction.BOTH) == []

    def test_missing_start_node(self, sports_store):
        with pytest.raises(NodeNotFoundError):
            sports_store.relationships(404, HAS_CLASS, Direction.OUTGOING)

    def test_re_adding_edge_overwrites_matches(self, sports_store):
        first = sports_store.add_has_class(GOAL, SPORTS, 9)
        second = sports_store.add_has_class(GOAL, SPORTS, 11)
        assert first == second
        edges = sports_store.relationships(GOAL, HAS_CLASS, Direction.OUTGOING)
        assert [r.matches for r in edges if r.end_id == SPORTS] == [11]

    def test_negative_matches_rejected(self, sports_store):
        with pytest.raises(ValueError):
            sports_store.add_affinity(GOAL, PENALTY_KICK, -1)

    def test_edge_to_missing_node(self, sports_store):
        with pytest.raises(NodeNotFoundError):
            sports_store.add_has_class(GOAL, 99, 1)


class TestTransactions:
    """Tests for read transaction bookkeeping."""

    def test_transaction_released(self, sports_store):
        with sports_store.read_transaction():
            assert sports_store.open_transactions == 1
        assert sports_store.open_transactions == 0
        assert sports_store.transactions_started == 1

    def test_transaction_released_on_error(self, sports_store):
        with pytest.raises(NodeNotFoundError):
            with sports_store.read_transaction():
                sports_store.get_node(404)
        assert sports_store.open_transactions == 0


class TestMutationEvents:
    """Tests for subscriber notifications."""

    def test_events_published(self):
        store = InMemoryGraphStore()
        events = []
        store.subscribe(events.append)

        sports = store.add_class("Sports")
        goal = store.add_pattern("goal")
        store.add_has_class(goal, sports, 2)
        store.add_has_class(goal, sports, 3)
        store.set_property(goal, 'threshold', 5)

        assert [e.kind for e in events] == [
            MutationKind.NODE_ADDED,
            MutationKind.NODE_ADDED,
            MutationKind.RELATIONSHIP_ADDED,
            MutationKind.RELATIONSHIP_CHANGED,
            MutationKind.PROPERTY_CHANGED,
        ]
        assert events[2].node_id == goal
        assert events[2].end_id == sports
        assert events[2].relationship_type == HAS_CLASS
        assert events[4].property_key == 'threshold'
        assert 'Pattern' in events[4].labels

    def test_unsubscribe(self):
        store = InMemoryGraphStore()
        events = []
        unsubscribe = store.subscribe(events.append)
        unsubscribe()
        store.add_class("Sports")
        assert events == []


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self, sports_store):
        assert sports_store.to_dict() == SPORTS_CORPUS

    def test_from_dict_missing_field(self):
        with pytest.raises(KeyError):
            InMemoryGraphStore.from_dict({'classes': [{'id': 0}]})

    def test_empty(self):
        assert InMemoryGraphStore.from_dict({}).to_dict() == {
            'classes': [], 'patterns': [], 'has_class': [], 'has_affinity': []
        }


class TestStoreNodePropertyCache:
    """Tests for memoized property resolution."""

    def test_resolve(self, sports_store):
        properties = StoreNodePropertyCache(sports_store)
        assert properties.resolve(GOAL)['phrase'] == "scored a goal"

    def test_memoized_until_invalidated(self, sports_store):
        properties = StoreNodePropertyCache(sports_store)
        properties.resolve(GOAL)
        sports_store.set_property(GOAL, 'phrase', "netted")
        assert properties.resolve(GOAL)['phrase'] == "scored a goal"

        properties.invalidate(GOAL)
        assert properties.resolve(GOAL)['phrase'] == "netted"

    def test_missing_node(self, sports_store):
        with pytest.raises(NodeNotFoundError):
            StoreNodePropertyCache(sports_store).resolve(404)
