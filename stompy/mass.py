# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import numpy as np
from scipy import fft

from . import core


def _mass_dot(Q, T, k=None):
    """
    Compute the sliding dot product of `Q` against every subsequence of `T` with
    block-wise FFT cross-correlation

    Every block of length `k` of `T` is transformed and multiplied with the
    transform of the reversed and zero-padded `Q`. After the inverse transform, the
    cells `[m - 1, k)` contain the dot products of `k - m + 1` consecutive
    subsequences. Consecutive blocks overlap by `m - 1` samples. The final partial
    block is handled with a transform sized to the remainder.

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence

    T : numpy.ndarray
        Time series or sequence

    k : int, default None
        The FFT block size. When `None`, it is chosen with `core.find_best_k`.
        It is always adjusted with `core.set_k`.

    Returns
    -------
    QT : numpy.ndarray
        Sliding dot product between `Q` and `T`

    Raises
    ------
    DegenerateInputError
        If the final partial block would write past the end of the profile

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table I, Figure 4

    http://www.cs.unm.edu/~mueen/FastestSimilaritySearch.html

    See MASS_V3
    """
    m = Q.shape[0]
    n = T.shape[0]
    l = n - m + 1

    if k is None:
        k = core.find_best_k(n, m)
    k = core.set_k(k, n, m)

    Qr = np.zeros(k, dtype=np.float64)
    Qr[:m] = Q[::-1]  # Reverse/flip Q
    Y = fft.rfft(Qr)

    QT = np.empty(l, dtype=np.float64)
    jump = k - m + 1

    j = 0
    while j <= n - k:
        z = fft.irfft(fft.rfft(T[j : j + k]) * Y, n=k)
        QT[j : j + jump] = z[m - 1 : k]
        j += jump

    remainder = n - j
    if remainder >= m:
        if j + remainder - m + 1 > l:  # pragma: no cover
            raise core.DegenerateInputError(
                f"The final MASS block at {j} with {remainder} samples overflows "
                f"the profile of length {l}"
            )
        Y = fft.rfft(Qr[:remainder])
        z = fft.irfft(fft.rfft(T[j:]) * Y, n=remainder)
        QT[j:] = z[m - 1 : remainder]

    return QT


def _mass(Q, T, M_T, Σ_T, μ_Q, σ_Q, k=None):
    """
    Compute the squared distance profile of `Q` against every subsequence of `T`
    together with the sliding dot products that seed the STOMP recurrence

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence

    T : numpy.ndarray
        Time series or sequence

    M_T : numpy.ndarray
        Sliding mean of `T`

    Σ_T : numpy.ndarray
        Sliding standard deviation of `T`

    μ_Q : float
        Mean of `Q`

    σ_Q : float
        Standard deviation of `Q`

    k : int, default None
        The FFT block size

    Returns
    -------
    D_squared : numpy.ndarray
        Squared distance profile. Degenerate subsequences are not masked.

    QT : numpy.ndarray
        Sliding dot product between `Q` and `T`
    """
    m = Q.shape[0]
    QT = _mass_dot(Q, T, k)
    D_squared = core._calculate_squared_distance_profile(m, QT, μ_Q, σ_Q, M_T, Σ_T)

    return D_squared, QT


def mass(Q, T, k=None):
    """
    Compute the z-normalized distance profile of `Q` against every subsequence
    of `T` with Mueen's Algorithm for Similarity Search (MASS)

    Parameters
    ----------
    Q : numpy.ndarray
        Query array or subsequence

    T : numpy.ndarray
        Time series or sequence

    k : int, default None
        The FFT block size. This only affects performance.

    Returns
    -------
    distance_profile : numpy.ndarray
        Distance profile. Subsequences of `T` that contain a `np.nan`/`np.inf` or
        that are constant, as well as every position when `Q` itself is invalid,
        are `np.inf`.

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0179 \
    <https://www.cs.ucr.edu/~eamonn/PID4481997_extend_Matrix%20Profile_I.pdf>`__

    See Table II
    """
    Q = core._preprocess(Q)
    m = Q.shape[0]
    Q, μ_Q, σ_Q, Q_subseq_isvalid = core.preprocess(Q, m)
    T, M_T, Σ_T, T_subseq_isvalid = core.preprocess(T, m)

    D_squared, _ = _mass(Q, T, M_T, Σ_T, μ_Q[0], σ_Q[0], k)
    D_squared[~T_subseq_isvalid] = np.inf
    if not Q_subseq_isvalid[0]:
        D_squared[:] = np.inf

    return np.sqrt(D_squared)
