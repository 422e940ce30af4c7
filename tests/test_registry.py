"""Tests for stabsel.registry — append-only mutation catalog."""

import numpy as np
import pytest

from stabsel.genomes import GenomePool
from stabsel.registry import MutationRegistry
from stabsel.types import DOMINANCE, SUBPOP_LABEL, Mutation, MutationType


@pytest.fixture
def registry():
    reg = MutationRegistry(initial_capacity=2)
    reg.create_mutation(10, 0.5, origin_tick=1)
    reg.create_mutation(20, -0.25, origin_tick=1)
    reg.create_mutation(30, 0.0, origin_tick=2, mutation_type=MutationType.NEUTRAL)
    return reg


class TestCreation:
    def test_ids_are_monotonic_from_zero(self):
        reg = MutationRegistry()
        ids = [reg.create_mutation(p, 0.1, origin_tick=1) for p in (5, 3, 9)]
        assert ids == [0, 1, 2]

    def test_batch_ids_contiguous(self, registry):
        ids = registry.create_mutations(
            np.array([1, 2, 3]), np.array([0.1, 0.2, 0.3]), origin_tick=5,
        )
        np.testing.assert_array_equal(ids, [3, 4, 5])
        assert len(registry) == 6

    def test_capacity_grows(self, registry):
        assert registry.capacity >= len(registry)
        before = registry.capacity
        registry.create_mutations(np.arange(100), np.zeros(100), origin_tick=3)
        assert registry.capacity > before
        # Existing records survive the reallocation
        assert registry.lookup(0).position == 10
        assert registry.lookup(1).effect == -0.25

    def test_length_mismatch(self, registry):
        with pytest.raises(ValueError, match="differ in length"):
            registry.create_mutations(np.array([1, 2]), np.array([0.1]), origin_tick=1)

    def test_no_delete_operation(self, registry):
        assert not hasattr(registry, 'delete')
        assert not hasattr(registry, 'remove')


class TestLookup:
    def test_lookup_fields(self, registry):
        m = registry.lookup(1)
        assert isinstance(m, Mutation)
        assert m.id == 1
        assert m.position == 20
        assert m.effect == -0.25
        assert m.origin_tick == 1
        assert m.mutation_type is MutationType.CAUSAL
        assert m.dominance == DOMINANCE
        assert m.origin_subpop == SUBPOP_LABEL

    def test_lookup_is_immutable(self, registry):
        m = registry.lookup(0)
        with pytest.raises(AttributeError):
            m.effect = 1.0

    def test_unknown_id(self, registry):
        with pytest.raises(KeyError):
            registry.lookup(99)
        with pytest.raises(KeyError):
            registry.lookup(-1)

    def test_array_views_read_only(self, registry):
        with pytest.raises(ValueError):
            registry.effects[0] = 5.0

    def test_count_by_type(self, registry):
        assert registry.count_by_type() == 2
        assert registry.count_by_type(MutationType.NEUTRAL) == 1

    def test_type_labels(self):
        assert MutationType.CAUSAL.label == "m1"
        assert MutationType.NEUTRAL.label == "m2"


class TestFrequencies:
    def test_prevalence_and_frequency(self, registry):
        # 2 individuals, 4 genomes
        pool = GenomePool.from_genomes([[0, 1], [0], [], [0, 2]])
        np.testing.assert_array_equal(registry.prevalence(pool), [3, 1, 1])
        assert registry.frequency_of(0, pool) == pytest.approx(0.75)
        assert registry.frequency_of(1, pool) == pytest.approx(0.25)

    def test_lost_mutation_still_registered(self, registry):
        pool = GenomePool.empty(2)
        assert registry.frequency_of(2, pool) == 0.0
        assert len(registry) == 3
        assert registry.lookup(2).position == 30

    def test_frequency_unknown_id(self, registry):
        with pytest.raises(KeyError):
            registry.frequency_of(10, GenomePool.empty(1))
