# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import contextlib
import threading

from tqdm.auto import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm


def get_progress_bar(total, progress=False, desc="stomp"):
    """
    Create the progress sink for a matrix profile computation

    Parameters
    ----------
    total : int
        The number of query subsequences that will be processed

    progress : bool, default False
        When `False`, the returned bar is disabled and never prints

    desc : str, default "stomp"
        The label shown in front of the bar

    Returns
    -------
    pbar : tqdm.tqdm
        A `tqdm` progress bar. Callers must `close()` it.
    """
    return tqdm(
        total=total,
        desc=desc,
        disable=not progress,
        dynamic_ncols=True,
        mininterval=0.2,
        leave=False,
    )


class LockedProgressBar:
    """
    Wrap a progress bar so that concurrent `update` calls from several worker
    threads are serialized

    Parameters
    ----------
    pbar : tqdm.tqdm
        The wrapped progress bar

    lock : threading.Lock, default None
        The lock that guards `pbar`. A new lock is created when `None`.
    """

    def __init__(self, pbar, lock=None):
        self._pbar = pbar
        self._lock = threading.Lock() if lock is None else lock

    def update(self, n=1):
        with self._lock:
            self._pbar.update(n)

    @property
    def n(self):
        return self._pbar.n

    def close(self):
        with self._lock:
            self._pbar.close()


@contextlib.contextmanager
def progress_redirect_logs(progress=False):
    """
    Route `logging` records through `tqdm` while a progress bar is shown so that
    log lines do not break the bar

    Parameters
    ----------
    progress : bool, default False
        Whether a progress bar is shown

    Yields
    ------
    None
    """
    if progress:
        with logging_redirect_tqdm():
            yield
    else:
        yield
