import copy
import logging

import numpy as np
import pytest

from rombasis import IncrementalSVD
from rombasis.metrics import orth_error, reconstruction_errors


def make_isvd(dim=3, tol=1e-6, skip=True, spti=100, **kwargs):
    return IncrementalSVD(dim, tol, skip, spti, **kwargs)


def test_first_sample_builds_rank_one_svd():
    isvd = make_isvd()
    isvd.take_sample(np.array([1.0, 0.0, 0.0]), time=0.0)

    assert isvd.rank == 1
    assert isvd.num_samples == 1
    assert np.allclose(np.abs(isvd.U), [[1.0], [0.0], [0.0]])
    assert np.allclose(isvd.Sigma, [[1.0]])
    assert np.allclose(isvd.Up, [[1.0]])
    assert isvd.get_basis_interval_start_time(0) == 0.0


def test_first_sample_norm_goes_to_sigma():
    isvd = make_isvd()
    isvd.take_sample(np.array([3.0, 4.0, 0.0]), time=0.5)

    assert np.allclose(isvd.Sigma, [[5.0]])
    assert np.allclose(isvd.U[:, 0], [0.6, 0.8, 0.0])
    assert isvd.get_basis_interval_start_time(0) == 0.5


def test_orthogonal_sample_adds_direction():
    isvd = make_isvd()
    isvd.take_sample(np.array([1.0, 0.0, 0.0]), 0.0)
    isvd.take_sample(np.array([0.0, 1.0, 0.0]), 0.1)

    assert isvd.rank == 2
    U = isvd.U
    assert np.allclose(U[2, :], 0.0)
    assert orth_error(U) < 1e-12
    assert np.allclose(np.sort(np.diag(isvd.Sigma)), [1.0, 1.0])
    assert np.allclose(isvd.Sigma, np.diag(np.diag(isvd.Sigma)))


def test_duplicate_sample_is_linearly_dependent():
    isvd = make_isvd(skip=True)
    samples = [np.array([1.0, 0.0, 0.0]),
               np.array([0.0, 1.0, 0.0]),
               np.array([1.0, 0.0, 0.0])]
    for t, u in enumerate(samples):
        isvd.take_sample(u, float(t))

    assert isvd.rank == 2
    assert isvd.num_samples == 3
    assert isvd.Up.shape == (3, 2)
    assert np.allclose(isvd.get_singular_values(), [np.sqrt(2.0), 1.0])
    assert np.max(reconstruction_errors(isvd.state, samples)) < 1e-12


def test_duplicate_sample_appended_when_not_skipping(caplog):
    isvd = make_isvd(skip=False)
    samples = [np.array([1.0, 0.0, 0.0]),
               np.array([0.0, 1.0, 0.0]),
               np.array([1.0, 0.0, 0.0])]
    with caplog.at_level(logging.WARNING, logger="rombasis"):
        for t, u in enumerate(samples):
            isvd.take_sample(u, float(t))

    assert isvd.rank == 3
    assert isvd.num_samples == 3
    assert isvd.Up.shape == (3, 3)
    assert orth_error(isvd.U) < 1e-12
    assert np.max(reconstruction_errors(isvd.state, samples)) < 1e-12
    # the forced direction carries a zero singular value
    assert isvd.get_singular_values()[-1] < 1e-12
    assert "rank deficient" in caplog.text


def test_residual_equal_to_tolerance_is_dependent():
    isvd = make_isvd(tol=0.5, skip=True)
    isvd.take_sample(np.array([1.0, 0.0, 0.0]), 0.0)
    isvd.take_sample(np.array([1.0, 0.5, 0.0]), 1.0)

    assert isvd.rank == 1
    assert isvd.num_samples == 2


def test_residual_above_tolerance_is_novel():
    isvd = make_isvd(tol=0.5, skip=True)
    isvd.take_sample(np.array([1.0, 0.0, 0.0]), 0.0)
    isvd.take_sample(np.array([1.0, 0.5001, 0.0]), 1.0)

    assert isvd.rank == 2
    assert isvd.num_samples == 2


def test_flag_forces_append_below_tolerance():
    isvd = make_isvd(tol=0.5, skip=False)
    isvd.take_sample(np.array([1.0, 0.0, 0.0]), 0.0)
    isvd.take_sample(np.array([1.0, 0.25, 0.0]), 1.0)

    assert isvd.rank == 2


def test_invariants_hold_after_every_update():
    rng = np.random.default_rng(0)
    dim = 6
    isvd = make_isvd(dim=dim, tol=1e-8, skip=True)
    samples = []
    prev_rank = 0
    for t in range(15):
        u = rng.standard_normal(dim)
        samples.append(u)
        isvd.take_sample(u, 0.1 * t)

        assert orth_error(isvd.U) < 1e-10
        assert isvd.rank - prev_rank in (0, 1)
        assert isvd.rank <= isvd.num_samples
        assert isvd.rank <= dim
        assert isvd.Up.shape == (isvd.num_samples, isvd.rank)
        assert isvd.Sigma.shape == (isvd.rank, isvd.rank)
        s = isvd.get_singular_values()
        assert np.all(np.diff(s) <= 1e-12)
        prev_rank = isvd.rank

    assert isvd.rank == dim
    assert np.max(reconstruction_errors(isvd.state, samples)) < 1e-8


def test_singular_values_match_batch_svd():
    rng = np.random.default_rng(42)
    basis, _ = np.linalg.qr(rng.standard_normal((10, 3)))
    samples = [basis @ rng.standard_normal(3) for _ in range(12)]

    isvd = make_isvd(dim=10, tol=1e-8, skip=True)
    for t, u in enumerate(samples):
        isvd.take_sample(u, float(t))

    assert isvd.rank == 3
    assert isvd.num_samples == 12
    s_batch = np.linalg.svd(np.column_stack(samples), compute_uv=False)[:3]
    assert np.allclose(isvd.get_singular_values(), s_batch, rtol=1e-10)
    # basis spans the same subspace as the generating vectors
    P = isvd.compute_basis()
    assert np.allclose(P @ (P.T @ basis), basis, atol=1e-10)
    # Up keeps orthonormal columns and reconstructs every sample
    assert orth_error(isvd.Up) < 1e-10
    assert np.max(reconstruction_errors(isvd.state, samples)) < 1e-10


def test_full_basis_falls_back_to_dependent_update(caplog):
    isvd = make_isvd(dim=2, skip=False)
    isvd.take_sample(np.array([1.0, 0.0]), 0.0)
    isvd.take_sample(np.array([0.0, 1.0]), 1.0)
    with caplog.at_level(logging.WARNING, logger="rombasis"):
        isvd.take_sample(np.array([1.0, 1.0]), 2.0)

    assert isvd.rank == 2
    assert isvd.num_samples == 3
    assert "already spans" in caplog.text


def test_compute_basis_returns_copy():
    isvd = make_isvd()
    isvd.take_sample(np.array([1.0, 2.0, 2.0]), 0.0)
    basis = isvd.compute_basis()
    basis[:] = 0.0
    assert not np.allclose(isvd.U, 0.0)


def test_debug_algorithm_logs_factors(caplog):
    isvd = make_isvd(debug_algorithm=True)
    with caplog.at_level(logging.DEBUG, logger="rombasis"):
        isvd.take_sample(np.array([1.0, 0.0, 0.0]), 0.0)
        isvd.take_sample(np.array([0.0, 1.0, 0.0]), 1.0)
    assert "orth_error" in caplog.text
    assert "Sigma =" in caplog.text


@pytest.mark.parametrize("kwargs", [
    dict(dim=0, tol=1e-6, spti=10),
    dict(dim=3, tol=0.0, spti=10),
    dict(dim=3, tol=1e-6, spti=0),
])
def test_invalid_construction_parameters(kwargs):
    with pytest.raises(ValueError):
        make_isvd(**kwargs)


def test_sample_preconditions():
    isvd = make_isvd()
    with pytest.raises(AssertionError):
        isvd.take_sample(np.zeros(4), 0.0)
    with pytest.raises(AssertionError):
        isvd.take_sample(None, 0.0)
    with pytest.raises(AssertionError):
        isvd.take_sample(np.ones(3), -1.0)
    with pytest.raises(AssertionError):
        isvd.take_sample(np.array([1.0, np.nan, 0.0]), 0.0)
    with pytest.raises(AssertionError):
        isvd.take_sample(np.zeros(3), 0.0)
    with pytest.raises(AssertionError):
        isvd.compute_basis()


def test_engine_is_not_copyable():
    isvd = make_isvd()
    with pytest.raises(TypeError):
        copy.copy(isvd)
    with pytest.raises(TypeError):
        copy.deepcopy(isvd)


def test_take_sample_reports_sample_folded_in():
    isvd = make_isvd()
    assert isvd.take_sample(np.array([1.0, 0.0, 0.0]), 0.0) is True
    assert isvd.take_sample(np.array([1.0, 0.0, 0.0]), 1.0) is True


def test_near_span_stream_keeps_basis_orthonormal_when_not_skipping():
    rng = np.random.default_rng(5)
    dim = 50
    basis, _ = np.linalg.qr(rng.standard_normal((dim, 5)))
    isvd = make_isvd(dim=dim, tol=1e-6, skip=False)

    for t, scale in enumerate(np.logspace(-3, 3, 40)):
        c = rng.standard_normal(5)
        u = basis @ (scale * c / np.linalg.norm(c)) + 1e-15 * rng.standard_normal(dim)
        isvd.take_sample(u, float(t))
        assert orth_error(isvd.U) < 1e-10

    assert isvd.rank == 40
    assert isvd.Up.shape == (40, 40)


def test_long_dependent_stream_keeps_basis_orthonormal():
    rng = np.random.default_rng(11)
    dim = 30
    basis, _ = np.linalg.qr(rng.standard_normal((dim, 8)))
    isvd = make_isvd(dim=dim, tol=1e-8, skip=True, spti=10000)

    for t in range(3000):
        isvd.take_sample(basis @ rng.standard_normal(8), 0.01 * t)
        assert orth_error(isvd.U) < 1e-10

    assert isvd.rank == 8
    assert isvd.num_samples == 3000
    P = isvd.compute_basis()
    assert np.allclose(P @ (P.T @ basis), basis, atol=1e-10)


def test_rank_deficiency_reported_once_per_interval(caplog):
    isvd = make_isvd(skip=False, spti=5)
    samples = [np.array([1.0, 0.0, 0.0]),
               np.array([0.0, 1.0, 0.0]),
               np.array([1.0, 0.0, 0.0]),
               np.array([1.0, 0.0, 0.0]),
               np.array([0.0, 1.0, 0.0])]
    with caplog.at_level(logging.WARNING, logger="rombasis"):
        for t, u in enumerate(samples):
            isvd.take_sample(u, float(t))
        messages = [r.getMessage() for r in caplog.records]
        assert sum("rank deficient" in m for m in messages) == 1

        # the next interval reports on its own
        for t, u in enumerate(samples[:3], start=5):
            isvd.take_sample(u, float(t))
        messages = [r.getMessage() for r in caplog.records]
        assert sum("rank deficient" in m for m in messages) == 2
