from unittest.mock import patch

import naive
import numpy as np
import numpy.testing as npt
import pytest

from stompy import (
    CancellationToken,
    DegenerateInputError,
    InternalFaultError,
    config,
    core,
    mass,
    mparray,
    stomp,
)

test_data = [
    (
        np.array([9, 8100, -60, 7], dtype=np.float64),
        np.array([584, -11, 23, 79, 1001, 0, -19], dtype=np.float64),
    ),
    (
        np.random.RandomState(0).uniform(-1000, 1000, [8]),
        np.random.RandomState(1).uniform(-1000, 1000, [64]),
    ),
]

substitution_locations = [0, -1, slice(1, 3), [0, 3]]
substitution_values = [np.nan, np.inf]
window_size = [3, 8, 16]


class CountdownToken(CancellationToken):
    """
    A token that cancels itself once it has been polled `n_polls` times
    """

    def __init__(self, n_polls):
        super().__init__()
        self._n_polls = n_polls

    def raise_if_cancelled(self):
        if self._n_polls == 0:
            self.cancel()
        self._n_polls -= 1
        super().raise_if_cancelled()


def test_stomp_int_input():
    with pytest.raises(TypeError):
        stomp(np.arange(10), 5)


@pytest.mark.parametrize("T_A, T_B", test_data)
def test_stomp_self_join(T_A, T_B):
    m = 3
    ref_P, ref_I = naive.stomp(T_B, m)
    comp_mp = stomp(T_B, m)

    naive.replace_inf(ref_P)
    comp_P = comp_mp.P_
    naive.replace_inf(comp_P)
    npt.assert_almost_equal(ref_P, comp_P, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


@pytest.mark.parametrize("T_A, T_B", test_data)
def test_stomp_A_B_join(T_A, T_B):
    m = 3
    ref_P, ref_I = naive.stomp(T_A, m, T_B=T_B, ez=0.0)
    comp_mp = stomp(T_A, m, T_B, ez=0.0)

    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


@pytest.mark.parametrize("T_A, T_B", test_data)
def test_stomp_B_A_join(T_A, T_B):
    m = 3
    ref_P, ref_I = naive.stomp(T_B, m, T_B=T_A, ez=0.0)
    comp_mp = stomp(T_B, m, T_A, ez=0.0)

    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


@pytest.mark.parametrize("m", window_size)
def test_stomp_self_join_larger_window(m):
    T = np.random.RandomState(2).uniform(-1000, 1000, [256])
    ref_P, ref_I = naive.stomp(T, m)
    comp_mp = stomp(T, m)

    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


@pytest.mark.parametrize("ez", [0.0, 0.25, 1.0])
def test_stomp_self_join_ez(ez):
    T = np.random.RandomState(3).uniform(-1000, 1000, [128])
    m = 8
    ref_P, ref_I = naive.stomp(T, m, ez=ez)
    comp_mp = stomp(T, m, ez=ez)

    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    assert comp_mp.ez_ == ez
    if ez > 0:
        npt.assert_almost_equal(ref_I, comp_mp.I_)
        zone = naive.excl_zone(m, ez)
        idx = np.arange(comp_mp.shape[0])
        assert np.all(np.abs(comp_mp.I_ - 1 - idx) > zone)
    else:
        # Without an exclusion zone every subsequence is its own trivial match
        npt.assert_almost_equal(
            np.zeros(comp_mp.shape[0]), comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION
        )


def test_stomp_self_join_config_ez():
    T = np.random.RandomState(4).uniform(-1000, 1000, [128])
    m = 8

    with patch("stompy.config.STOMPY_EZ", 0.25):
        ref_P, ref_I = naive.stomp(T, m, ez=0.25)
        comp_mp = stomp(T, m)

    assert comp_mp.ez_ == 0.25
    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


def test_stomp_output_properties():
    T_A = np.random.RandomState(5).uniform(-1000, 1000, [100])
    T_B = np.random.RandomState(6).uniform(-1000, 1000, [80])
    m = 10
    comp_mp = stomp(T_A, m, T_B, ez=0.0)

    assert isinstance(comp_mp, mparray)
    assert comp_mp.shape == (T_A.shape[0] - m + 1, 2)
    assert comp_mp.m_ == m
    assert not comp_mp.partial_
    assert np.all(comp_mp.is_set_)
    assert np.all(comp_mp.P_ >= 0.0)
    assert np.all(comp_mp.I_ >= 1)
    assert np.all(comp_mp.I_ <= T_B.shape[0] - m + 1)


@pytest.mark.parametrize("T_A, T_B", test_data)
@pytest.mark.parametrize("substitute", substitution_values)
@pytest.mark.parametrize("substitution_location", substitution_locations)
def test_stomp_nan_inf_self_join(T_A, T_B, substitute, substitution_location):
    m = 3

    T_B_sub = T_B.copy()
    T_B_sub[substitution_location] = substitute

    ref_P, ref_I = naive.stomp(T_B_sub, m)
    comp_mp = stomp(T_B_sub, m)

    naive.replace_inf(ref_P)
    comp_P = comp_mp.P_
    naive.replace_inf(comp_P)
    npt.assert_almost_equal(ref_P, comp_P, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)

    T_B_subseq_isvalid = naive.subseq_isvalid(T_B_sub, m)
    assert np.all(np.isinf(comp_mp.P_[~T_B_subseq_isvalid]))
    assert np.all(~comp_mp.is_set_[~T_B_subseq_isvalid])
    matched = comp_mp.I_[comp_mp.is_set_] - 1
    assert np.all(T_B_subseq_isvalid[matched])


@pytest.mark.parametrize("T_A, T_B", test_data)
@pytest.mark.parametrize("substitute", substitution_values)
@pytest.mark.parametrize("substitution_location", substitution_locations)
def test_stomp_nan_inf_A_B_join(T_A, T_B, substitute, substitution_location):
    m = 3

    T_A_sub = T_A.copy()
    T_B_sub = T_B.copy()
    T_A_sub[substitution_location] = substitute
    T_B_sub[substitution_location] = substitute

    ref_P, ref_I = naive.stomp(T_A_sub, m, T_B=T_B_sub, ez=0.0)
    comp_mp = stomp(T_A_sub, m, T_B_sub, ez=0.0)

    naive.replace_inf(ref_P)
    comp_P = comp_mp.P_
    naive.replace_inf(comp_P)
    npt.assert_almost_equal(ref_P, comp_P, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


def test_stomp_nan_does_not_modify_input():
    T = np.random.RandomState(7).uniform(-1000, 1000, [32])
    T[5] = np.nan
    stomp(T, 4)

    assert np.isnan(T[5])


def test_stomp_constant_subsequence_self_join():
    T = np.random.RandomState(8).uniform(-1000, 1000, [64])
    T[20:28] = 5.0
    m = 4

    ref_P, ref_I = naive.stomp(T, m)
    comp_mp = stomp(T, m)

    # Windows starting at 20 through 24 only contain `5.0`
    assert np.all(np.isinf(comp_mp.P_[20:25]))
    assert np.all(~comp_mp.is_set_[20:25])
    assert not np.any(np.isin(comp_mp.I_, np.arange(21, 26)))
    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


def test_stomp_constant_subsequence_A_B_join():
    T_A = np.concatenate((np.full(10, 1.0), np.random.RandomState(9).rand(30)))
    T_B = np.random.RandomState(10).rand(40)
    m = 4

    ref_P, ref_I = naive.stomp(T_A, m, T_B=T_B, ez=0.0)
    comp_mp = stomp(T_A, m, T_B, ez=0.0)

    assert np.all(np.isinf(comp_mp.P_[:7]))
    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


def test_stomp_repeated_pattern():
    T = np.array([1.0, 2.0, 3.0, 2.0, 1.0, 2.0, 3.0, 2.0, 1.0])
    m = 4

    # `[1, 2, 3, 2]` occurs at index 0 and at index 4
    D = mass(T[:m], T)
    npt.assert_almost_equal(0.0, D[4], decimal=config.STOMPY_TEST_PRECISION)

    comp_mp = stomp(T, m, ez=0.0)
    npt.assert_almost_equal(0.0, comp_mp.P_[0], decimal=config.STOMPY_TEST_PRECISION)
    assert comp_mp.I_[0] in (1, 5)

    comp_mp = stomp(T, m, ez=0.5)
    npt.assert_almost_equal(0.0, comp_mp.P_[0], decimal=config.STOMPY_TEST_PRECISION)
    assert comp_mp.I_[0] == 5


def test_stomp_window_equals_length():
    T_A = np.random.RandomState(11).uniform(-1000, 1000, [16])
    T_B = np.random.RandomState(12).uniform(-1000, 1000, [64])
    m = T_A.shape[0]

    comp_mp = stomp(T_A, m, T_B, ez=0.0)
    ref_P, ref_I = naive.stomp(T_A, m, T_B=T_B, ez=0.0)

    assert comp_mp.shape == (1, 2)
    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


def test_stomp_window_equals_length_self_join():
    T = np.random.RandomState(13).uniform(-1000, 1000, [16])

    with pytest.warns(UserWarning):
        comp_mp = stomp(T, T.shape[0])

    assert comp_mp.shape == (1, 2)
    assert np.isinf(comp_mp.P_[0])
    assert comp_mp.I_[0] == config.STOMPY_UNSET_INDEX


@pytest.mark.parametrize("m", [-1, 0, 1, 65, 2.5])
def test_stomp_bad_window_size(m):
    T = np.random.RandomState(14).uniform(-1000, 1000, [64])

    with pytest.raises(DegenerateInputError):
        stomp(T, m)


def test_stomp_window_longer_than_query():
    T_A = np.random.RandomState(15).uniform(-1000, 1000, [64])
    T_B = np.random.RandomState(16).uniform(-1000, 1000, [8])

    with pytest.raises(DegenerateInputError):
        stomp(T_A, 16, T_B, ez=0.0)


@pytest.mark.parametrize("ez", [-0.5, 1.5, np.nan])
def test_stomp_bad_ez(ez):
    T = np.random.RandomState(17).uniform(-1000, 1000, [64])

    with pytest.raises(DegenerateInputError):
        stomp(T, 8, ez=ez)


def test_stomp_cancelled_before_start():
    T = np.random.RandomState(18).uniform(-1000, 1000, [64])
    m = 8
    token = CancellationToken()
    token.cancel()

    comp_mp = stomp(T, m, cancel_token=token)

    assert comp_mp.partial_
    assert comp_mp.shape == (T.shape[0] - m + 1, 2)
    assert np.all(np.isinf(comp_mp.P_))
    assert np.all(comp_mp.I_ == config.STOMPY_UNSET_INDEX)
    assert not np.any(comp_mp.is_set_)


def test_stomp_cancelled_midway():
    T = np.random.RandomState(19).uniform(-1000, 1000, [200])
    m = 10

    # Polls: before the seed, at the start of the block, and once per stride. The
    # fourth poll cancels after the seed row and one stride of 10 rows.
    with patch("stompy.config.STOMPY_CANCEL_STRIDE", 10):
        comp_mp = stomp(T, m, cancel_token=CountdownToken(3))

    ref_P, ref_I = naive.stomp(T, m, row_stop=11)
    full_P, _ = naive.stomp(T, m)

    assert comp_mp.partial_
    naive.replace_inf(ref_P)
    comp_P = comp_mp.P_
    naive.replace_inf(comp_P)
    npt.assert_almost_equal(ref_P, comp_P, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)

    # Every set entry is a genuine pair distance that is no better than the
    # completed value
    for j in np.flatnonzero(comp_mp.is_set_):
        i = comp_mp.I_[j] - 1
        D = naive.distance_profile(T[i : i + m], T, m)
        npt.assert_almost_equal(
            D[j], comp_mp.P_[j], decimal=config.STOMPY_TEST_PRECISION
        )
        assert comp_mp.P_[j] >= full_P[j] - 1e-7


def test_stomp_progress():
    T = np.random.RandomState(20).uniform(-1000, 1000, [128])
    m = 8

    ref_P, ref_I = naive.stomp(T, m)
    comp_mp = stomp(T, m, progress=True)

    npt.assert_almost_equal(ref_P, comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION)
    npt.assert_almost_equal(ref_I, comp_mp.I_)


def test_stomp_internal_fault():
    T = np.random.RandomState(21).uniform(-1000, 1000, [64])

    def _fail(*args, **kwargs):
        raise RuntimeError("boom")

    with patch.object(core, "_compute_block", _fail):
        with pytest.raises(InternalFaultError) as excinfo:
            stomp(T, 8)

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_stomp_identical_A_B_join_warns(caplog):
    T = np.random.RandomState(22).uniform(-1000, 1000, [64])

    with caplog.at_level("WARNING"):
        comp_mp = stomp(T, 8, T.copy(), ez=0.0)

    assert "self-join" in caplog.text
    npt.assert_almost_equal(
        np.zeros(comp_mp.shape[0]), comp_mp.P_, decimal=config.STOMPY_TEST_PRECISION
    )
