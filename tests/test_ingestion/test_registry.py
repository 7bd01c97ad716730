"""Tests for the driver registry."""

from buzzing.ingestion.registry import SOURCE_NAMES, driver_factories
from buzzing.posts.schemas import ScoreUpdateMode


class TestDriverFactories:
    def test_every_source_registered(self, test_settings):
        factories = driver_factories(test_settings)
        assert tuple(factories) == SOURCE_NAMES

    def test_factory_builds_matching_driver(self, test_settings):
        for name, factory in driver_factories(test_settings).items():
            assert factory().name == name

    def test_factories_build_fresh_drivers(self, test_settings):
        factory = driver_factories(test_settings)["lobsters"]
        assert factory() is not factory()

    def test_score_policies(self, test_settings):
        drivers = {name: f() for name, f in driver_factories(test_settings).items()}

        assert drivers["askhn"].score_policy.mode is ScoreUpdateMode.INCREASE_ONLY
        assert drivers["askhn"].score_policy.threshold == 30
        assert drivers["reddit"].score_policy.mode is ScoreUpdateMode.ABSOLUTE
        assert drivers["reddit"].score_policy.threshold == 50
        assert drivers["nature"].score_policy is None
        assert drivers["guardian"].score_policy is None
