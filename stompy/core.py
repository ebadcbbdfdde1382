# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.  # noqa: E501
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging
import math
import warnings

import numpy as np
from numba import njit, prange

from . import config

logger = logging.getLogger(__name__)


class DegenerateInputError(ValueError):
    """
    Raised when the window size, the exclusion zone fraction, the parallel grain
    size, or the internal block arithmetic leave no valid profile to compute.
    """


class InternalFaultError(RuntimeError):
    """
    Raised in place of any unexpected exception that escapes a matrix profile
    computation. The original exception is chained as `__cause__`.
    """


def check_dtype(a, dtype=np.float64):
    """
    Check if the array type of `a` is of type specified by `dtype` parameter.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    dtype : dtype, default np.float64
        NumPy `dtype`

    Returns
    -------
    None

    Raises
    ------
    TypeError
        If the array type does not match `dtype`
    """
    if dtype is float:
        dtype = np.float64
    if not np.issubdtype(a.dtype, dtype):
        msg = f"{dtype} dtype expected but found {a.dtype} in input array\n"
        msg += "Please change your input `dtype` with `.astype(dtype)`"
        raise TypeError(msg)

    return True


def are_arrays_equal(a, b):
    """
    Check if two arrays are equal; first by comparing memory addresses,
    and secondly by their values.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    b : numpy.ndarray
        NumPy array

    Returns
    -------
    output : bool
        This is `True` if the arrays are equal and `False` otherwise.
    """
    if id(a) == id(b):
        return True

    if a.shape != b.shape:
        return False

    return bool(((a == b) | (np.isnan(a) & np.isnan(b))).all())


def are_distances_too_small(a, threshold=10e-6):
    """
    Check the distance values from a matrix profile.

    If the finite values are smaller than the threshold (i.e., less than 10e-6)
    then it could suggest that an AB-join is really a self-join without an
    exclusion zone.

    Parameters
    ----------
    a : numpy.ndarray
        NumPy array

    threshold : float, default 10e-6
        Minimum value in which to compare the matrix profile to

    Returns
    -------
    output : bool
        This is `True` if the finite matrix profile distances are all below the
        threshold (or their mean is) and `False` otherwise.
    """
    a = a[np.isfinite(a)]
    if a.shape[0] == 0:
        return False

    if a.mean() < threshold or np.all(a < threshold):
        return True

    return False


def check_window_size(m, max_size=None, n=None, excl_zone=0):
    """
    Check the window size and ensure that it is greater than or equal to 2 and, if
    `max_size` is provided, ensure that the window size is less than or equal to
    the `max_size`. Furthermore, if `n` is provided, then a self-join is assumed
    and it checks whether all subsequences have at least one non-trivial neighbor
    outside of the exclusion zone.

    Parameters
    ----------
    m : int
        Window size

    max_size : int, default None
        The maximum window size allowed

    n : int, default None
        The length of the time series in the case of a self-join.
        `n` should not be supplied (or set to `None`) in the case of an AB-join.

    excl_zone : int, default 0
        The exclusion zone radius used for the self-join

    Returns
    -------
    None

    Raises
    ------
    DegenerateInputError
        If `m` is not an integer, is smaller than 2, or is larger than `max_size`
    """
    if not isinstance(m, (int, np.integer)) or isinstance(m, bool):
        raise DegenerateInputError(f"The window size must be an integer, found {m!r}")

    if m < 2:
        raise DegenerateInputError(
            "All window sizes must be greater than or equal to two. A window of "
            "length one has a standard deviation of zero and cannot be z-normalized."
        )

    if max_size is not None and m > max_size:
        raise DegenerateInputError(
            f"The window size must be less than or equal to {max_size}"
        )

    if n is not None and excl_zone > 0:
        # The central-most subsequence has its farthest neighbor `l // 2` positions
        # away. If the exclusion zone covers it then at least one subsequence
        # has no eligible neighbor.
        l = n - m + 1
        if l // 2 <= excl_zone:
            msg = (
                f"The window size, 'm = {m}', may be too large and could lead to "
                + "meaningless results. Consider reducing 'm' or 'ez' where necessary"
            )
            warnings.warn(msg)


def check_ez(ez):
    """
    Check that the exclusion zone fraction is a real number in `[0, 1]`

    Parameters
    ----------
    ez : float
        The exclusion zone expressed as a fraction of the window size

    Returns
    -------
    None
    """
    if ez is None or not np.isfinite(ez) or ez < 0.0 or ez > 1.0:
        raise DegenerateInputError(f"`ez` must be a real number in [0, 1], found {ez}")


def get_excl_zone(m, ez):
    """
    Compute the exclusion zone radius, `round(m * ez)`, with halves rounded up

    Parameters
    ----------
    m : int
        Window size

    ez : float
        The exclusion zone expressed as a fraction of the window size

    Returns
    -------
    excl_zone : int
        The number of positions on either side of the query index that are
        never eligible as a match
    """
    return int(math.floor(m * ez + 0.5 + np.finfo(np.float64).eps))


def _rolling_isfinite_1d(a, w):
    """
    Determine if all elements in each rolling window `isfinite`

    A prefix sum over the non-finite indicator counts the offending samples in
    every window in a single pass.

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : int
        The length of the rolling window

    Returns
    -------
    output : numpy.ndarray
        A boolean array of length `a.shape[0] - w + 1` that records whether each
        rolling window subsequence contain all finite values
    """
    n = a.shape[0]
    cumsum = np.zeros(n + 1, dtype=np.int64)
    np.cumsum(~np.isfinite(a), out=cumsum[1:])

    return (cumsum[w:] - cumsum[: n - w + 1]) == 0


def rolling_isfinite(a, w):
    """
    Compute the rolling `isfinite` for a 1-D array.

    This a convenience wrapper around `_rolling_isfinite_1d`.

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : numpy.ndarray
        The rolling window size

    Returns
    -------
    output : numpy.ndarray
        Rolling window isfinite.
    """
    return _rolling_isfinite_1d(np.asarray(a), w)


@njit(parallel=True, fastmath=config.STOMPY_FASTMATH_FLAGS)
def _rolling_isconstant(a, w):
    """
    Compute the rolling isconstant for 1-D array.

    This is accomplished by comparing the min and max within each window and
    assigning `True` when the min and max are equal and `False` otherwise.

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : numpy.ndarray
        The rolling window size

    Returns
    -------
    output : numpy.ndarray
        Rolling window isconstant.
    """
    l = a.shape[0] - w + 1
    out = np.empty(l)
    for i in prange(l):
        out[i] = np.ptp(a[i : i + w])

    return out == 0


def rolling_isconstant(a, w):
    """
    Compute the rolling isconstant for a 1-D array of finite values

    This is a convenience wrapper around the Numba JIT-compiled
    `_rolling_isconstant` function.

    Parameters
    ----------
    a : numpy.ndarray
        The input array

    w : int
        The rolling window size

    Returns
    -------
    output : numpy.ndarray
        A boolean array that indicates whether a subsequence is constant (True)
    """
    return _rolling_isconstant(np.ascontiguousarray(a, dtype=np.float64), w)


def compute_mean_std(T, m):
    """
    Compute the sliding mean and standard deviation for the array `T` with
    a window size of `m`

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence. All values are expected to be finite.

    m : int
        Window size

    Returns
    -------
    M_T : numpy.ndarray
        Sliding mean

    Σ_T : numpy.ndarray
        Sliding (population) standard deviation

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table II

    DOI: 10.1145/2020408.2020587

    See Page 2 and Equations 1, 2

    http://www.cs.unm.edu/~mueen/FastestSimilaritySearch.html

    Note that Mueen's algorithm has an off-by-one bug where the
    sum for the first subsequence is omitted and we fixed that!

    The series is shifted by its global mean before the prefix sums are taken,
    which keeps the variance (sum of squares minus squared sum) from losing
    precision when the samples sit far from zero.
    """
    if T.ndim != 1:  # pragma: no cover
        raise ValueError(f"T is {T.ndim}-dimensional and must be 1-dimensional.")

    n = T.shape[0]
    shift = np.mean(T)
    T_shifted = T - shift

    cumsum_T = np.empty(n + 1)  # Add one element, fix off-by-one
    np.cumsum(T_shifted, out=cumsum_T[1:])  # store output in cumsum_T[1:]
    cumsum_T[0] = 0

    cumsum_T_squared = np.empty(n + 1)
    np.cumsum(np.square(T_shifted), out=cumsum_T_squared[1:])
    cumsum_T_squared[0] = 0

    subseq_sum_T = cumsum_T[m:] - cumsum_T[: n - m + 1]
    subseq_sum_T_squared = cumsum_T_squared[m:] - cumsum_T_squared[: n - m + 1]
    M_T = subseq_sum_T / m
    Σ_T_squared = subseq_sum_T_squared / m - np.square(M_T)
    Σ_T = np.sqrt(np.maximum(Σ_T_squared, 0.0))

    return M_T + shift, Σ_T


def _preprocess(T, copy=True):
    """
    Creates a copy of the time series when `copy` is True, converts to
    `numpy.ndarray`, and checks the `dtype`

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    copy : bool, default True
        A boolean value that indicates whether the process should be done on
        input `T` (False) or its copy (True).

    Returns
    -------
    T : numpy.ndarray
        Modified time series
    """
    T = np.array(T, copy=copy) if copy else np.asarray(T)
    check_dtype(T)

    if T.ndim != 1:
        raise ValueError(f"T is {T.ndim}-dimensional and must be 1-dimensional.")

    return T


def preprocess(T, m, copy=True):
    """
    Creates a copy of the time series where all NaN and inf values
    are replaced with zero. Also computes the mean and standard deviation
    for every subsequence, and a boolean array that flags every subsequence
    that may take part in a match. A subsequence is invalid when it contains
    at least one NaN/inf value in the original input, when it is constant, or
    when its standard deviation falls below `config.STOMPY_STDDEV_THRESHOLD`.
    The returned standard deviation is floored at the same threshold so that
    it can safely be used as a divisor.

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    copy : bool, default True
        A boolean value that indicates whether the process should be done on
        input `T` (False) or its copy (True).

    Returns
    -------
    T : numpy.ndarray
        Modified time series
    M_T : numpy.ndarray
        Rolling mean
    Σ_T : numpy.ndarray
        Rolling standard deviation
    T_subseq_isvalid : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T`
        is finite and non-degenerate (True)
    """
    T = _preprocess(T, copy)
    check_window_size(m, max_size=T.shape[0])

    T_subseq_isfinite = rolling_isfinite(T, m)
    T[~np.isfinite(T)] = 0.0

    M_T, Σ_T = compute_mean_std(T, m)
    T_subseq_isconstant = rolling_isconstant(T, m)

    T_subseq_isvalid = (
        T_subseq_isfinite
        & ~T_subseq_isconstant
        & (Σ_T >= config.STOMPY_STDDEV_THRESHOLD)
    )
    Σ_T = np.maximum(Σ_T, config.STOMPY_STDDEV_THRESHOLD)

    return T, M_T, Σ_T, T_subseq_isvalid


def preprocess_stomp(T_A, m, T_B=None, ez=None):
    """
    Validate and preprocess both sides of a matrix profile join

    Parameters
    ----------
    T_A : numpy.ndarray
        The reference time series. Every subsequence in `T_A` is annotated with
        its nearest neighbor in `T_B`.

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The query time series. Default is `None` which corresponds to a self-join.

    ez : float, default None
        The exclusion zone as a fraction of `m`. When `None`, this defaults to
        `config.STOMPY_EZ`.

    Returns
    -------
    T_A : numpy.ndarray
        Sanitized reference time series

    T_B : numpy.ndarray
        Sanitized query time series

    M_T : numpy.ndarray
        Rolling mean of `T_A`

    Σ_T : numpy.ndarray
        Rolling standard deviation of `T_A`

    μ_Q : numpy.ndarray
        Rolling mean of `T_B`

    σ_Q : numpy.ndarray
        Rolling standard deviation of `T_B`

    T_A_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of `T_A`

    T_B_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of `T_B`

    excl_zone : int
        The exclusion zone radius

    ez : float
        The exclusion zone fraction that was used
    """
    if ez is None:
        ez = config.STOMPY_EZ
    check_ez(ez)

    ignore_trivial = T_B is None
    if ignore_trivial:
        T_B = T_A
    elif ez == 0.0 and are_arrays_equal(np.asarray(T_A), np.asarray(T_B)):
        logger.warning("Arrays T_A, T_B are equal, which implies a self-join.")
        logger.warning("Try setting `ez > 0` to exclude trivial matches.")

    T_A, M_T, Σ_T, T_A_subseq_isvalid = preprocess(T_A, m)
    T_B, μ_Q, σ_Q, T_B_subseq_isvalid = preprocess(T_B, m)

    excl_zone = get_excl_zone(m, ez)
    if ignore_trivial:
        check_window_size(m, n=T_A.shape[0], excl_zone=excl_zone)

    return (
        T_A,
        T_B,
        M_T,
        Σ_T,
        μ_Q,
        σ_Q,
        T_A_subseq_isvalid,
        T_B_subseq_isvalid,
        excl_zone,
        ez,
    )


def set_k(k, n, m):
    """
    Adjust the FFT block size, `k`, so that it is a power of two that is strictly
    greater than `m` and no larger than `n`

    Parameters
    ----------
    k : int
        The requested block size

    n : int
        The length of the time series that will be split into blocks

    m : int
        Window size

    Returns
    -------
    k : int
        The block size. When no power of two fits between `m` and `n`, the block
        size is `n` itself and a single transform covers the whole series.
    """
    n = int(n)
    k = max(int(k), m + 1)
    k = 1 << (k - 1).bit_length()  # Round up to the next power of two
    if k > n:
        k = 1 << (n.bit_length() - 1)  # Largest power of two <= n
        if k <= m:
            k = n

    return k


def find_best_k(n, m, k=None):
    """
    Pick the FFT block size that minimizes the estimated cost of a block-wise
    MASS over a time series of length `n`

    Every block of length `k` costs `O(k log k)` and yields `k - m + 1` distances,
    so small blocks waste work on the overlap while large blocks waste work on
    the logarithm.

    Parameters
    ----------
    n : int
        The length of the time series

    m : int
        Window size

    k : int, default None
        The smallest block size that is considered. When `None`, this defaults to
        `config.STOMPY_MASS_K`.

    Returns
    -------
    k : int
        The block size
    """
    if k is None:
        k = config.STOMPY_MASS_K

    l = n - m + 1
    best_k = set_k(min(k, n), n, m)
    best_cost = np.inf
    candidate = best_k
    while candidate <= n:
        n_blocks = math.ceil(l / (candidate - m + 1))
        cost = n_blocks * candidate * math.log2(candidate)
        if cost < best_cost:
            best_k = candidate
            best_cost = cost
        candidate *= 2

    return best_k


@njit(fastmath=config.STOMPY_FASTMATH_FLAGS)
def _calculate_squared_distance_profile(m, QT, μ_Q, σ_Q, M_T, Σ_T):
    """
    Compute the squared z-normalized Euclidean distance profile from the sliding
    dot products

    Parameters
    ----------
    m : int
        Window size

    QT : numpy.ndarray
        Dot product between `Q` and every subsequence in `T`

    μ_Q : float
        Mean of `Q`

    σ_Q : float
        Standard deviation of `Q`

    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    Returns
    -------
    D_squared : numpy.ndarray
        Squared distance profile. Negative values, caused by floating point
        rounding, are clamped to zero.

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Equation on Page 4
    """
    l = M_T.shape[0]
    D_squared = np.empty(l, dtype=np.float64)
    for j in range(l):
        d = 2.0 * (m - (QT[j] - m * M_T[j] * μ_Q) / (Σ_T[j] * σ_Q))
        if d < 0.0:
            d = 0.0
        D_squared[j] = d

    return D_squared


@njit(fastmath=config.STOMPY_FASTMATH_FLAGS)
def _apply_exclusion_zone(a, idx, excl_zone, val):
    """
    Apply an exclusion zone to an array (inplace), i.e. set all values
    to `val` in a window around a given index.

    All values in a in [idx - excl_zone, idx + excl_zone] (endpoints included)
    will be set to `val`.

    Parameters
    ----------
    a : numpy.ndarray
        The array you want to apply the exclusion zone to

    idx : int
        The index around which the window should be centered

    excl_zone : int
        Size of the exclusion zone.

    val : float or bool
        The elements within the exclusion zone will be set to this value

    Returns
    -------
    None
    """
    zone_start = max(0, idx - excl_zone)
    zone_stop = min(a.shape[-1], idx + excl_zone + 1)
    if zone_start < zone_stop:
        a[zone_start:zone_stop] = val


@njit(nogil=True, fastmath=config.STOMPY_FASTMATH_FLAGS)
def _update_PI(D, i, excl_zone, T_A_subseq_isvalid, Q_isvalid, P, I):
    """
    Mask the squared distance profile of the `i`th query subsequence (inplace) and
    fold it into the running matrix profile and matrix profile indices

    Parameters
    ----------
    D : numpy.ndarray
        Squared distance profile of the `i`th query subsequence

    i : int
        The (0-based) index of the query subsequence

    excl_zone : int
        The exclusion zone radius. Nothing is excluded when this is zero.

    T_A_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of the reference time series

    Q_isvalid : bool
        Whether the `i`th query subsequence is valid

    P : numpy.ndarray
        Running (squared) matrix profile, updated inplace

    I : numpy.ndarray
        Running 1-based matrix profile indices, updated inplace

    Returns
    -------
    None
    """
    if excl_zone > 0:
        _apply_exclusion_zone(D, i, excl_zone, np.inf)

    if not Q_isvalid:
        D[:] = np.inf

    for j in range(D.shape[0]):
        if not T_A_subseq_isvalid[j]:
            D[j] = np.inf
        if D[j] < P[j]:
            P[j] = D[j]
            I[j] = i + 1


@njit(nogil=True, fastmath=config.STOMPY_FASTMATH_FLAGS)
def _stomp_rows(
    T_A,
    T_B,
    m,
    QT,
    QT_first,
    M_T,
    Σ_T,
    μ_Q,
    σ_Q,
    T_A_subseq_isvalid,
    T_B_subseq_isvalid,
    excl_zone,
    row_start,
    row_stop,
    P,
    I,
):
    """
    A Numba JIT-compiled STOMP recurrence over the query subsequences in
    `[row_start, row_stop)`. `QT` must hold the sliding dot products of the query
    subsequence at `row_start - 1` and is updated inplace.

    Parameters
    ----------
    T_A : numpy.ndarray
        The (sanitized) reference time series

    T_B : numpy.ndarray
        The (sanitized) query time series

    m : int
        Window size

    QT : numpy.ndarray
        Sliding dot products of the previous query subsequence against `T_A`

    QT_first : numpy.ndarray
        Sliding dot products of `T_A[:m]` against `T_B`

    M_T : numpy.ndarray
        Sliding mean of `T_A`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T_A`

    μ_Q : numpy.ndarray
        Sliding mean of `T_B`

    σ_Q : numpy.ndarray
        Sliding standard deviation of `T_B`

    T_A_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of `T_A`

    T_B_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of `T_B`

    excl_zone : int
        The exclusion zone radius

    row_start : int
        The first (inclusive) query index. Must be greater than zero.

    row_stop : int
        The last (exclusive) query index

    P : numpy.ndarray
        Running (squared) matrix profile, updated inplace

    I : numpy.ndarray
        Running 1-based matrix profile indices, updated inplace

    Returns
    -------
    None

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0085 \
    <https://www.cs.ucr.edu/~eamonn/STOMP_GPU_final_submission_camera_ready.pdf>`__

    See Table II
    """
    l_A = QT.shape[0]
    for i in range(row_start, row_stop):
        drop_value = T_B[i - 1]
        new_value = T_B[i + m - 1]
        for j in range(l_A - 1, 0, -1):
            QT[j] = QT[j - 1] - T_A[j - 1] * drop_value + T_A[j + m - 1] * new_value
        QT[0] = QT_first[i]

        D = _calculate_squared_distance_profile(m, QT, μ_Q[i], σ_Q[i], M_T, Σ_T)
        _update_PI(D, i, excl_zone, T_A_subseq_isvalid, T_B_subseq_isvalid[i], P, I)


@njit(nogil=True, fastmath=config.STOMPY_FASTMATH_FLAGS)
def _merge_PI(P, I, P_block, I_block):
    """
    Merge a block's matrix profile and matrix profile indices into `P` and `I`
    (inplace)

    A block value replaces the current one when it is strictly smaller. Equal
    finite values keep the smaller query index, which is the value a sequential
    pass would have kept, so the merge is commutative and associative.

    Parameters
    ----------
    P : numpy.ndarray
        Shared (squared) matrix profile

    I : numpy.ndarray
        Shared matrix profile indices

    P_block : numpy.ndarray
        The block's (squared) matrix profile

    I_block : numpy.ndarray
        The block's matrix profile indices

    Returns
    -------
    None
    """
    for j in range(P.shape[0]):
        if P_block[j] < P[j] or (
            P_block[j] == P[j] and P_block[j] < np.inf and I_block[j] < I[j]
        ):
            P[j] = P_block[j]
            I[j] = I_block[j]


def _compute_block(
    T_A,
    T_B,
    m,
    excl_zone,
    M_T,
    Σ_T,
    μ_Q,
    σ_Q,
    T_A_subseq_isvalid,
    T_B_subseq_isvalid,
    QT_first,
    start,
    stop,
    D,
    QT,
    P,
    I,
    cancel_token=None,
    pbar=None,
):
    """
    Process the query subsequences in `[start, stop)` and fold them into `P` and
    `I` (inplace)

    The subsequence at `start` is taken directly from its MASS seed, `D` and `QT`,
    and the remaining ones are computed with the STOMP recurrence in strides of
    `config.STOMPY_CANCEL_STRIDE`. The cancellation token is polled and the
    progress bar is updated once per stride.

    Parameters
    ----------
    T_A : numpy.ndarray
        The (sanitized) reference time series

    T_B : numpy.ndarray
        The (sanitized) query time series

    m : int
        Window size

    excl_zone : int
        The exclusion zone radius

    M_T : numpy.ndarray
        Sliding mean of `T_A`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T_A`

    μ_Q : numpy.ndarray
        Sliding mean of `T_B`

    σ_Q : numpy.ndarray
        Sliding standard deviation of `T_B`

    T_A_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of `T_A`

    T_B_subseq_isvalid : numpy.ndarray
        Valid subsequence flags of `T_B`

    QT_first : numpy.ndarray
        Sliding dot products of `T_A[:m]` against `T_B`

    start : int
        The first (inclusive) query index

    stop : int
        The last (exclusive) query index

    D : numpy.ndarray
        Squared distance profile of the query subsequence at `start`

    QT : numpy.ndarray
        Sliding dot products of the query subsequence at `start`. This is updated
        inplace.

    P : numpy.ndarray
        (Squared) matrix profile, updated inplace

    I : numpy.ndarray
        Matrix profile indices, updated inplace

    cancel_token : CancellationToken, default None
        Cooperative cancellation token

    pbar : tqdm, default None
        Progress sink that receives the number of processed query subsequences

    Returns
    -------
    None

    Raises
    ------
    CancellationRequested
        If `cancel_token` was cancelled
    """
    stride = max(1, int(config.STOMPY_CANCEL_STRIDE))

    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    _update_PI(D, start, excl_zone, T_A_subseq_isvalid, T_B_subseq_isvalid[start], P, I)
    if pbar is not None:
        pbar.update(1)

    row_start = start + 1
    while row_start < stop:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        row_stop = min(row_start + stride, stop)
        _stomp_rows(
            T_A,
            T_B,
            m,
            QT,
            QT_first,
            M_T,
            Σ_T,
            μ_Q,
            σ_Q,
            T_A_subseq_isvalid,
            T_B_subseq_isvalid,
            excl_zone,
            row_start,
            row_stop,
            P,
            I,
        )
        if pbar is not None:
            pbar.update(row_stop - row_start)
        row_start = row_stop


def _get_ranges(size, n_chunks, truncate):
    """
    Given a single input integer value, split an array of that length `size` evenly
    into `n_chunks`.

    Parameters
    ----------
    size : int
        The size or length of an array to chunk

    n_chunks : int
        Number of chunks to split the array into

    truncate : bool
        If `truncate=True`, drop the rows of `array_ranges` that are empty (i.e.,
        when there are fewer elements than chunks).

    Returns
    -------
    array_ranges : numpy.ndarray
        A two column array where each row consists of a start and (exclusive) stop
        index pair. The first column contains the start indices and the second
        column contains the stop indices.
    """
    a = np.ones(size, dtype=np.int64)
    array_ranges = np.zeros((n_chunks, 2), dtype=np.int64)
    if a.shape[0] > 0 and n_chunks > 0:
        cumsum = a.cumsum()
        insert = np.linspace(0, a.sum(), n_chunks + 1)[1:-1]
        idx = 1 + np.searchsorted(cumsum, insert)
        array_ranges[1:, 0] = idx  # Fill the first column with start indices
        array_ranges[:-1, 1] = idx  # Fill the second column with exclusive stop indices
        array_ranges[-1, 1] = a.shape[0]  # Handle the stop index for the final chunk

    if truncate:
        array_ranges = array_ranges[array_ranges[:, 0] != array_ranges[:, 1]]

    return array_ranges


def _check_P(P, threshold=None):
    """
    Check if the 1-dimensional matrix profile values are too small and
    issue a warning if true.

    Parameters
    ----------
    P : numpy.ndarray
        A 1-dimensional matrix profile

    threshold : float, default None
        A distance threshold. When `None`, this defaults to
        `config.STOMPY_TOO_SMALL_THRESHOLD`.

    Returns
    -------
        None
    """
    if threshold is None:
        threshold = config.STOMPY_TOO_SMALL_THRESHOLD

    if P.ndim != 1:
        raise ValueError(f"`P` was {P.ndim}-dimensional and must be 1-dimensional")
    if are_distances_too_small(P, threshold=threshold):
        msg = f"A large number of values in `P` are smaller than {threshold}.\n"
        msg += "For a self-join, try setting `ez > 0`."
        warnings.warn(msg)

