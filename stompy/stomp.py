# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging

import numpy as np

from . import config, core
from .cancel import CancellationRequested
from .mass import _mass, _mass_dot
from .mparray import mparray
from .progress import get_progress_bar, progress_redirect_logs
from .stomped import _stomped

logger = logging.getLogger(__name__)


def _stomp(
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
    cancel_token=None,
    pbar=None,
):
    """
    Compute the matrix profile of `T_A` against `T_B` with "Scalable Time series
    Ordered-search Matrix Profile" (STOMP) in a single pass over the query
    subsequences

    The first query subsequence is seeded with one MASS call. Every following one
    is obtained from the previous sliding dot products in `O(1)` per reference
    subsequence, where the dot product of the first reference subsequence comes
    from a second, join-style MASS call of `T_A[:m]` against `T_B`.

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

    cancel_token : CancellationToken, default None
        Cooperative cancellation token

    pbar : tqdm, default None
        Progress sink

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        1-based matrix profile indices

    partial : bool
        `True` if the computation was cancelled before it completed

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0085 \
    <https://www.cs.ucr.edu/~eamonn/STOMP_GPU_final_submission_camera_ready.pdf>`__

    See Table II
    """
    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1

    P = np.full(l_A, np.inf, dtype=np.float64)
    I = np.full(l_A, config.STOMPY_UNSET_INDEX, dtype=np.int64)
    partial = False

    k = core.find_best_k(T_A.shape[0], m)
    QT_first = _mass_dot(T_A[:m], T_B)

    try:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        D, QT = _mass(T_B[:m], T_A, M_T, Σ_T, μ_Q[0], σ_Q[0], k)
        core._compute_block(
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
            0,
            l_B,
            D,
            QT,
            P,
            I,
            cancel_token,
            pbar,
        )
    except CancellationRequested:
        partial = True
        logger.warning(
            "Process terminated by the user successfully, partial results were "
            "returned."
        )

    return np.sqrt(P), I, partial


def stomp(
    T_A,
    m,
    T_B=None,
    ez=None,
    parallel=False,
    progress=False,
    cancel_token=None,
    n_threads=None,
    grain=None,
):
    """
    Compute the z-normalized matrix profile with STOMP

    For every subsequence in `T_A`, this records the z-normalized Euclidean
    distance to its nearest neighbor subsequence in `T_B` and the 1-based index of
    that neighbor. This is a convenience wrapper around `_stomp` (sequential) and
    `stomped._stomped` (thread parallel).

    Parameters
    ----------
    T_A : numpy.ndarray
        The reference time series or sequence for which to compute the matrix
        profile. It may contain `np.nan`/`np.inf` values.

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The query time series or sequence that will be used to annotate `T_A`.
        Default is `None` which corresponds to a self-join.

    ez : float, default None
        The exclusion zone as a fraction of `m`. Reference subsequences within
        `round(m * ez)` positions of the current query index are never eligible as
        a match. When `None`, this defaults to `config.STOMPY_EZ`. Set `ez = 0` for
        an AB-join where the positions of `T_A` and `T_B` are unrelated.

    parallel : bool, default False
        When `True`, the query subsequences are split into contiguous blocks that
        are processed by a pool of threads (see `stomped`).

    progress : bool, default False
        Show a `tqdm` progress bar

    cancel_token : CancellationToken, default None
        Cooperative cancellation token. Once cancelled, the computation stops at the
        next poll and the partial result is returned.

    n_threads : int, default None
        The number of worker threads when `parallel = True`

    grain : int, default None
        The minimum number of query subsequences per block when `parallel = True`

    Returns
    -------
    out : mparray
        A two column array where the first column is the matrix profile and the
        second column is the 1-based matrix profile indices. These are also
        available as `.P_` and `.I_`, along with `.is_set_`, `.partial_` and
        `.ez_`.

    Raises
    ------
    DegenerateInputError
        If `m` or `ez` is invalid for the input time series
    InternalFaultError
        If the computation fails for any other reason

    See Also
    --------
    stompy.stomped : Compute the z-normalized matrix profile with a pool of threads
    stompy.mass : Compute the z-normalized distance profile of a single query

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0085 \
    <https://www.cs.ucr.edu/~eamonn/STOMP_GPU_final_submission_camera_ready.pdf>`__

    See Table II

    Examples
    --------
    >>> import stompy
    >>> import numpy as np
    >>> mp = stompy.stomp(np.array([1., 2., 3., 2., 1., 2., 3., 2., 1.]), m=4, ez=0.5)
    >>> int(mp.I_[0])
    5
    """
    (
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
    ) = core.preprocess_stomp(T_A, m, T_B, ez)

    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1

    pbar = get_progress_bar(l_B, progress, desc="stomped" if parallel else "stomp")
    try:
        with progress_redirect_logs(progress):
            if parallel:
                P, I, partial = _stomped(
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
                    cancel_token,
                    pbar,
                    n_threads,
                    grain,
                )
            else:
                P, I, partial = _stomp(
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
                    cancel_token,
                    pbar,
                )
    except core.DegenerateInputError:
        raise
    except Exception as err:
        raise core.InternalFaultError(
            f"The matrix profile computation failed unexpectedly: {err!r}"
        ) from err
    finally:
        pbar.close()

    if not partial:
        core._check_P(P)

    out = np.empty((l_A, 2), dtype=object)
    out[:, 0] = P
    out[:, 1] = I

    return mparray(out, m, ez, partial)


def stomped(
    T_A,
    m,
    T_B=None,
    ez=None,
    progress=False,
    cancel_token=None,
    n_threads=None,
    grain=None,
):
    """
    Compute the z-normalized matrix profile with STOMP and a pool of threads

    This is a convenience wrapper around `stomp` with `parallel = True`. The query
    subsequences are split into contiguous blocks of at least `grain` rows. Every
    block is seeded with its own MASS call, runs the STOMP recurrence on private
    buffers, and is merged into the shared result under a lock. The result is
    identical (within floating point tolerance) to the sequential `stomp`
    regardless of `n_threads` and `grain`.

    Parameters
    ----------
    T_A : numpy.ndarray
        The reference time series or sequence for which to compute the matrix
        profile. It may contain `np.nan`/`np.inf` values.

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The query time series or sequence that will be used to annotate `T_A`.
        Default is `None` which corresponds to a self-join.

    ez : float, default None
        The exclusion zone as a fraction of `m`. When `None`, this defaults to
        `config.STOMPY_EZ`.

    progress : bool, default False
        Show a `tqdm` progress bar

    cancel_token : CancellationToken, default None
        Cooperative cancellation token shared by all worker threads

    n_threads : int, default None
        The number of worker threads. When `None`, this defaults to
        `numba.config.NUMBA_NUM_THREADS`.

    grain : int, default None
        The minimum number of query subsequences per block. It must be greater
        than `m`. When `None`, this defaults to `config.STOMPY_GRAIN` (or `m + 1`,
        whichever is larger).

    Returns
    -------
    out : mparray
        A two column array where the first column is the matrix profile and the
        second column is the 1-based matrix profile indices

    See Also
    --------
    stompy.stomp : Compute the z-normalized matrix profile
    """
    return stomp(
        T_A,
        m,
        T_B=T_B,
        ez=ez,
        parallel=True,
        progress=progress,
        cancel_token=cancel_token,
        n_threads=n_threads,
        grain=grain,
    )
