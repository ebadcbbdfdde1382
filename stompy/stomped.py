# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

import numba
import numpy as np

from . import config, core
from .cancel import CancellationRequested, CancellationToken
from .mass import _mass, _mass_dot
from .progress import LockedProgressBar

logger = logging.getLogger(__name__)


def _stomped_block(
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
    k,
    start,
    stop,
    P,
    I,
    lock,
    cancel_token=None,
    pbar=None,
):
    """
    Compute the matrix profile contribution of the query subsequences in
    `[start, stop)` on private buffers and merge it into the shared `P` and `I`
    under `lock`

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

    k : int
        The FFT block size of the seeding MASS call

    start : int
        The first (inclusive) query index of the block

    stop : int
        The last (exclusive) query index of the block

    P : numpy.ndarray
        Shared (squared) matrix profile

    I : numpy.ndarray
        Shared matrix profile indices

    lock : threading.Lock
        The lock that guards `P` and `I`

    cancel_token : CancellationToken, default None
        Cooperative cancellation token

    pbar : LockedProgressBar, default None
        Thread-safe progress sink

    Returns
    -------
    None

    Raises
    ------
    CancellationRequested
        If `cancel_token` was cancelled. Nothing is merged in that case.
    """
    l_A = T_A.shape[0] - m + 1

    P_block = np.full(l_A, np.inf, dtype=np.float64)
    I_block = np.full(l_A, config.STOMPY_UNSET_INDEX, dtype=np.int64)

    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    # `scipy.fft` owns a separate workspace per call so no lock is needed here
    D, QT = _mass(T_B[start : start + m], T_A, M_T, Σ_T, μ_Q[start], σ_Q[start], k)
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
        start,
        stop,
        D,
        QT,
        P_block,
        I_block,
        cancel_token,
        pbar,
    )

    with lock:
        core._merge_PI(P, I, P_block, I_block)


def _stomped(
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
    n_threads=None,
    grain=None,
):
    """
    Compute the matrix profile of `T_A` against `T_B` with STOMP by splitting the
    query subsequences into contiguous blocks that are processed by a pool of
    threads

    Every block is seeded with its own MASS call and then runs the STOMP recurrence
    on private buffers. The Numba JIT-compiled kernels release the GIL so the
    blocks run concurrently. Finished blocks are merged into the shared result
    with an elementwise minimum (ties keep the smaller query index), which makes
    the result independent of the number of threads, the block sizes, and the
    completion order.

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
        Cooperative cancellation token shared by all blocks

    pbar : tqdm, default None
        Progress sink

    n_threads : int, default None
        The number of worker threads. When `None`, this defaults to
        `numba.config.NUMBA_NUM_THREADS`.

    grain : int, default None
        The minimum number of query subsequences per block. When `None`, this
        defaults to the larger of `config.STOMPY_GRAIN` and `m + 1`.

    Returns
    -------
    P : numpy.ndarray
        Matrix profile

    I : numpy.ndarray
        1-based matrix profile indices

    partial : bool
        `True` if the computation was cancelled before it completed

    Raises
    ------
    DegenerateInputError
        If `grain` is not greater than `m` or `n_threads` is smaller than one
    """
    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1

    if n_threads is None:
        n_threads = numba.config.NUMBA_NUM_THREADS
    if n_threads < 1:
        raise core.DegenerateInputError(
            f"`n_threads` must be a positive integer, found {n_threads}"
        )

    if grain is None:
        grain = max(config.STOMPY_GRAIN, m + 1)
    elif grain <= m:
        raise core.DegenerateInputError(
            f"The block size, 'grain = {grain}', must be greater than 'm = {m}'"
        )

    n_chunks = max(1, l_B // grain)
    ranges = core._get_ranges(l_B, n_chunks, truncate=True)
    logger.debug(f"Splitting {l_B} query subsequences into {len(ranges)} blocks")

    P = np.full(l_A, np.inf, dtype=np.float64)
    I = np.full(l_A, config.STOMPY_UNSET_INDEX, dtype=np.int64)
    lock = threading.Lock()
    if pbar is not None:
        pbar = LockedProgressBar(pbar)

    k = core.find_best_k(T_A.shape[0], m)
    QT_first = _mass_dot(T_A[:m], T_B)

    # Also reports the caller's cancellation; cancelled by the driver on a fault
    block_token = CancellationToken(parent=cancel_token)

    partial = False
    with ThreadPoolExecutor(max_workers=min(n_threads, len(ranges))) as executor:
        futures = [
            executor.submit(
                _stomped_block,
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
                k,
                start,
                stop,
                P,
                I,
                lock,
                block_token,
                pbar,
            )
            for start, stop in ranges
        ]

        for future in as_completed(futures):
            try:
                future.result()
            except CancellationRequested:
                partial = True
            except Exception:
                block_token.cancel()
                for f in futures:
                    f.cancel()
                raise

    if partial:
        logger.warning(
            "Process terminated by the user successfully, partial results were "
            "returned."
        )

    return np.sqrt(P), I, partial
