"""
Integration Tests for VectorSpaceModel
======================================

End-to-end queries over the sports corpus through the public facade:
phrase rankings, the similarity matrix, text and class similarity,
cache invalidation on graph mutation and metrics.
"""

import math
import threading

import pytest

from lexigraph import (
    ClassNotFoundError,
    InMemoryGraphStore,
    MemoizationCache,
    VectorSpaceModel,
    VsmConfig,
    cosine_similarity,
)
from tests.fixtures.sports_corpus import (
    EXTRA_TIME,
    FEATURE_INDEX,
    GOAL,
    SPORTS,
    THE,
    StaticPatternMatcher,
    build_sports_store,
)

GOAL_VARIANCE = 0.8 / math.sqrt(2)
LOG_3_2 = math.log(3 / 2)
LOG_3 = math.log(3)

GOAL_TEXT = 'he scored a goal from a penalty kick'
MIXED_TEXT = 'the goal came in extra time'
FINANCE_TEXT = 'interest rates moved the stock market'


class TestFeatureAndPhraseQueries:
    """Tests for feature_frequency_map, phrases and phrases_for_class."""

    def test_feature_frequency_map(self, model):
        result = model.feature_frequency_map(MIXED_TEXT)
        assert [(r.feature, r.frequency) for r in result] == [(THE, 3), (EXTRA_TIME, 1), (GOAL, 1)]
        assert result[2].variance == pytest.approx(GOAL_VARIANCE)
        assert result[0].to_dict() == {'feature': THE, 'frequency': 3, 'variance': pytest.approx(0.0)}

    def test_feature_frequency_map_no_matches(self, model):
        assert model.feature_frequency_map('nothing relevant here') == []

    def test_phrases(self, model):
        result = model.phrases(MIXED_TEXT)
        assert [r.feature for r in result] == ['the', 'extra time', 'scored a goal']
        assert [r.frequency for r in result] == [3, 1, 1]

        affinities = {r.feature: r.affinity for r in result}
        assert affinities['the'] == pytest.approx(affinities['extra time'])
        assert affinities['scored a goal'] < affinities['the']
        assert sum(affinities.values()) == pytest.approx(1.0)

    def test_phrases_for_class(self, model):
        result = model.phrases_for_class("Sports")
        assert result.is_sorted
        assert result.to_list() == [
            {'feature': 'penalty kick', 'affinity': pytest.approx(0.75)},
            {'feature': 'scored a goal', 'affinity': pytest.approx((0.5 + GOAL_VARIANCE) / 2)},
        ]

    def test_phrases_for_class_descending(self, model):
        result = model.phrases_for_class("finance")
        affinities = [r.affinity for r in result]
        assert affinities == sorted(affinities, reverse=True)
        assert {r.feature for r in result} == {
            'scored a goal', 'interest rates', 'stock market', 'election day'
        }

    def test_phrases_for_unknown_class(self, model):
        with pytest.raises(ClassNotFoundError):
            model.phrases_for_class("Weather")

    @pytest.mark.parametrize("bad", ["", None, 3])
    def test_phrases_for_class_validates(self, model, bad):
        with pytest.raises(ValueError):
            model.phrases_for_class(bad)

    def test_text_queries_validate(self, model):
        with pytest.raises(ValueError):
            model.feature_frequency_map(None)
        with pytest.raises(ValueError):
            model.similar_document_map_for_vector(42)


class TestSimilarityMatrix:
    """Tests for cosine_similarity_matrix."""

    def test_axes_case_insensitive(self, model):
        assert model.cosine_similarity_matrix().classes == ["finance", "Politics", "Sports"]

    def test_values(self, model):
        matrix = model.cosine_similarity_matrix()
        assert matrix.vectors == [
            [1.0, 0.70711, 0.35355],
            [0.70711, 1.0, 0.0],
            [0.35355, 0.0, 1.0],
        ]

    def test_disjoint_classes_score_zero(self, model):
        assert model.cosine_similarity_matrix().similarity("Sports", "Politics") == 0.0

    def test_symmetric_with_unit_diagonal(self, model):
        matrix = model.cosine_similarity_matrix()
        size = len(matrix.classes)
        for i in range(size):
            assert matrix.vectors[i][i] == 1.0
            for j in range(size):
                assert matrix.vectors[i][j] == matrix.vectors[j][i]

    def test_identical_feature_sets_score_one(self, matcher):
        store = InMemoryGraphStore()
        first = store.add_class("A")
        second = store.add_class("B")
        third = store.add_class("C")
        for phrase in ("alpha", "beta"):
            feature = store.add_pattern(phrase, threshold=1)
            store.add_has_class(feature, first, 1)
            store.add_has_class(feature, second, 1)
            store.add_has_class(feature, third, 10)
        only_c = store.add_pattern("gamma")
        store.add_has_class(only_c, third, 4)

        matrix = VectorSpaceModel(store, matcher).cosine_similarity_matrix()
        assert matrix.similarity("A", "B") == 1.0
        assert matrix.similarity("A", "C") == pytest.approx(round(2 / (math.sqrt(2) * math.sqrt(3)), 5))

    def test_class_without_features_is_nan(self, model, sports_store):
        sports_store.add_class("Weather")
        matrix = model.cosine_similarity_matrix()
        assert "Weather" in matrix.classes
        assert math.isnan(matrix.similarity("Weather", "Weather"))

    def test_to_dict_shape(self, model):
        payload = model.cosine_similarity_matrix().to_dict()
        assert set(payload) == {'classes', 'vectors'}
        assert len(payload['vectors']) == 3


class TestSimilarDocuments:
    """Tests for similar_document_map_for_vector and _for_class."""

    def test_for_vector_ranks_sports_first(self, model):
        result = model.similar_document_map_for_vector(GOAL_TEXT)
        assert result.class_names() == ["Sports", "finance"]

        query = [(0.5 + GOAL_VARIANCE) / 2 * 10, 0, 0, 0, 7.5]
        sports = [9 * LOG_3_2, 0, 0, 0, 2 * LOG_3]
        assert result.classes[0].similarity == pytest.approx(cosine_similarity(query, sports))

    def test_for_vector_finance_text(self, model):
        assert model.similar_document_map_for_vector(FINANCE_TEXT).class_names() == [
            "finance", "Politics"
        ]

    def test_for_vector_excludes_non_positive(self, model):
        result = model.similar_document_map_for_vector(GOAL_TEXT)
        assert "Politics" not in result.class_names()
        assert all(match.similarity > 0 for match in result.classes)

    def test_for_vector_no_matches(self, model):
        result = model.similar_document_map_for_vector('nothing relevant here')
        assert result.classes == []
        assert result.to_dict() == {'classes': []}

    def test_for_class_excludes_self(self, model):
        for name in ("Sports", "finance", "Politics"):
            assert name not in model.similar_document_map_for_class(name).class_names()

    def test_for_class_sports(self, model):
        result = model.similar_document_map_for_class("Sports")
        assert result.class_names() == ["finance"]
        assert result.classes[0].similarity == pytest.approx(9 / (math.sqrt(85) * 2))

    def test_for_class_finance(self, model):
        result = model.similar_document_map_for_class("finance")
        assert result.class_names() == ["Politics", "Sports"]
        assert result.classes[0].similarity == pytest.approx(9 / (math.sqrt(102) * math.sqrt(2)))
        assert result.classes[1].similarity == pytest.approx(1 / (math.sqrt(102) * math.sqrt(2)))

    def test_for_class_to_dict(self, model):
        payload = model.similar_document_map_for_class("Politics").to_dict()
        assert payload == {
            'classes': [{'class': 'finance', 'similarity': pytest.approx(7 / (math.sqrt(29) * 2))}]
        }

    def test_for_unknown_class(self, model):
        with pytest.raises(ClassNotFoundError):
            model.similar_document_map_for_class("Weather")


class TestCacheBehaviour:
    """Tests for memoization, invalidation on mutation and sharing."""

    def test_repeat_queries_hit_cache(self, model):
        model.similar_document_map_for_class("Sports")
        misses = model.cache_stats()['misses']
        model.similar_document_map_for_class("Sports")
        assert model.cache_stats()['misses'] == misses
        assert model.cache_stats()['hits'] > 0

    def test_new_class_refreshes_document_size(self, model, sports_store):
        assert model.statistics.document_size() == 3
        sports_store.add_class("Weather")
        assert model.statistics.document_size() == 4

    def test_new_feature_edge_refreshes_index(self, model, sports_store):
        assert model.vectors.feature_index_list() == FEATURE_INDEX
        hat_trick = sports_store.add_pattern("hat trick")
        sports_store.add_has_class(hat_trick, SPORTS, 5)

        assert model.vectors.feature_index_list() == FEATURE_INDEX + [hat_trick]
        assert model.vectors.frequency_vector("Sports")[-1] == 5.0

    def test_changed_matches_refresh_frequencies(self, model, sports_store):
        assert model.vectors.frequency_vector("Sports")[0] == 9.0
        sports_store.add_has_class(GOAL, SPORTS, 12)
        assert model.vectors.frequency_vector("Sports")[0] == 12.0

    def test_phrase_rename_refreshes_results(self, model, sports_store):
        model.phrases_for_class("Sports")
        sports_store.set_property(GOAL, 'phrase', "netted")
        assert 'netted' in {r.feature for r in model.phrases_for_class("Sports")}

    def test_without_invalidation_values_stay_cached(self, sports_store, matcher):
        model = VectorSpaceModel(sports_store, matcher, invalidate_on_mutation=False)
        assert model.statistics.document_size() == 3
        sports_store.add_class("Weather")
        assert model.statistics.document_size() == 3

        assert model.invalidate_cache() > 0
        assert model.statistics.document_size() == 4

    def test_close_stops_invalidation(self, sports_store, matcher):
        model = VectorSpaceModel(sports_store, matcher)
        model.statistics.document_size()
        model.close()
        sports_store.add_class("Weather")
        assert model.statistics.document_size() == 3

    def test_shared_cache(self, sports_store, matcher):
        cache = MemoizationCache()
        first = VectorSpaceModel(sports_store, matcher, cache=cache)
        second = VectorSpaceModel(sports_store, matcher, cache=cache)
        first.cosine_similarity_matrix()
        misses = cache.stats()['misses']
        second.cosine_similarity_matrix()
        assert cache.stats()['misses'] == misses
        first.close()
        second.close()

    def test_empty_cache_is_used_as_given(self, sports_store, matcher):
        cache = MemoizationCache()
        model = VectorSpaceModel(sports_store, matcher, cache=cache)
        assert model.cache is cache
        model.close()

    def test_transactions_released(self, model, sports_store):
        model.cosine_similarity_matrix()
        model.similar_document_map_for_vector(GOAL_TEXT)
        with pytest.raises(ClassNotFoundError):
            model.similar_document_map_for_class("Weather")
        assert sports_store.open_transactions == 0

    def test_concurrent_queries_agree(self, matcher):
        model = VectorSpaceModel(build_sports_store(), matcher)
        results = []

        def query():
            results.append(model.similar_document_map_for_class("finance").to_dict())

        threads = [threading.Thread(target=query) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(results) == 8
        assert all(result == results[0] for result in results)
        model.close()


class TestConfigurationAndMetrics:
    """Tests for custom vocabulary, thresholds and metrics."""

    def test_custom_labels(self, matcher):
        store = InMemoryGraphStore()
        news = store.add_node(['Topic'], {'name': 'news'})
        weather = store.add_node(['Topic'], {'name': 'weather'})
        rain = store.add_node(['Phrase'], {'phrase': 'rain', 'threshold': 2})
        vote = store.add_node(['Phrase'], {'phrase': 'vote', 'threshold': 1})
        store.add_has_class(rain, weather, 5)
        store.add_has_class(vote, news, 3)

        config = VsmConfig(class_label='Topic', feature_label='Phrase')
        model = VectorSpaceModel(store, matcher, config=config)
        assert model.vectors.feature_index_list() == [rain, vote]
        assert model.cosine_similarity_matrix().classes == ['news', 'weather']
        model.close()

    def test_confidence_interval_setting(self, sports_store, matcher):
        """With a 0.5 interval only goal and single-class features remain."""
        model = VectorSpaceModel(sports_store, matcher, config=VsmConfig(confidence_interval=0.5))
        assert model.vectors.feature_index_list() == [GOAL, 13, 16]
        model.close()

    def test_metrics_disabled_by_default(self, model):
        model.cosine_similarity_matrix()
        assert model.get_metrics() == {}

    def test_metrics_enabled(self, sports_store, matcher):
        model = VectorSpaceModel(sports_store, matcher, enable_metrics=True)
        model.cosine_similarity_matrix()
        model.cosine_similarity_matrix()

        metrics = model.get_metrics()
        assert metrics['cosine_similarity_matrix']['count'] == 2
        assert metrics['cache_misses']['count'] > 0
        assert metrics['cache_hits']['count'] > 0
        assert "cosine_similarity_matrix" in model.get_metrics_summary()

        model.reset_metrics()
        assert model.get_metrics() == {}
        model.close()

    def test_static_matcher_called_once_per_query(self, sports_store):
        matcher = StaticPatternMatcher({GOAL_TEXT: {GOAL: 1}})
        model = VectorSpaceModel(sports_store, matcher)
        model.similar_document_map_for_vector(GOAL_TEXT)
        assert matcher.calls == 1
        model.close()
