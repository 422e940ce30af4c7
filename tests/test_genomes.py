"""Tests for stabsel.genomes — CSR genome pool and diversity statistics."""

import numpy as np
import pytest

from stabsel.genomes import GenomePool, nucleotide_heterozygosity, segregating_mask


@pytest.fixture
def pool():
    # 3 individuals / 6 genomes
    return GenomePool.from_genomes([[0, 2], [1], [], [2], [0, 1, 2], [3]])


class TestGenomePool:
    def test_empty(self):
        p = GenomePool.empty(5)
        assert p.n_individuals == 5
        assert p.n_genomes == 10
        assert p.n_entries == 0

    def test_shape(self, pool):
        assert pool.n_individuals == 3
        assert pool.n_genomes == 6
        assert pool.n_entries == 8

    def test_genome_access(self, pool):
        np.testing.assert_array_equal(pool.genome(4), [0, 1, 2])
        assert len(pool.genome(2)) == 0

    def test_individual_homologs(self, pool):
        g0, g1 = pool.individual(1)
        assert list(g0) == []
        assert list(g1) == [2]

    def test_from_genomes_sorts_and_dedupes(self):
        p = GenomePool.from_genomes([[3, 1, 3], []])
        np.testing.assert_array_equal(p.genome(0), [1, 3])

    def test_bad_offsets(self):
        with pytest.raises(ValueError):
            GenomePool(np.array([1, 2]), np.array([0, 1, 3]))
        with pytest.raises(ValueError):
            GenomePool(np.array([1]), np.array([0, 1]))

    def test_entry_owner(self, pool):
        np.testing.assert_array_equal(pool.entry_owner(), [0, 0, 1, 3, 4, 4, 4, 5])

    def test_gather(self, pool):
        ids, owner = pool.gather(np.array([4, 0, 4]))
        np.testing.assert_array_equal(ids, [0, 1, 2, 0, 2, 0, 1, 2])
        np.testing.assert_array_equal(owner, [0, 0, 0, 1, 1, 2, 2, 2])

    def test_gather_empty_genomes(self, pool):
        ids, owner = pool.gather(np.array([2, 2]))
        assert len(ids) == 0 and len(owner) == 0

    def test_mutation_counts(self, pool):
        np.testing.assert_array_equal(pool.mutation_counts(5), [2, 2, 3, 1, 0])

    def test_presence_matrix(self, pool):
        m = pool.presence_matrix(np.array([1, 3]))
        assert m.shape == (2, 6)
        np.testing.assert_array_equal(m[0], [0, 1, 0, 0, 1, 0])
        np.testing.assert_array_equal(m[1], [0, 0, 0, 0, 0, 1])

    def test_presence_matches_counts(self, pool):
        ids = np.arange(4)
        m = pool.presence_matrix(ids)
        np.testing.assert_array_equal(m.sum(axis=1), pool.mutation_counts(4))


class TestDiversity:
    def test_heterozygosity_formula(self):
        counts = np.array([2, 4, 0])   # p = 0.5, 1.0, 0.0 over 4 genomes
        h = nucleotide_heterozygosity(counts, n_genomes=4, genome_size=100)
        assert h == pytest.approx(2 * 0.5 * 0.5 / 100)

    def test_heterozygosity_empty(self):
        assert nucleotide_heterozygosity(np.array([]), 4, 100) == 0.0

    def test_segregating_mask(self):
        mask = segregating_mask(np.array([0, 1, 3, 4]), n_genomes=4)
        np.testing.assert_array_equal(mask, [False, True, True, False])
