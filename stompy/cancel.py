# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import contextlib
import logging
import signal
import threading

logger = logging.getLogger(__name__)


class CancellationRequested(Exception):
    """
    Raised inside a matrix profile computation once its `CancellationToken` has
    been cancelled. It never escapes `stomp`/`stomped`, which convert it into a
    partial result.
    """


class CancellationToken:
    """
    A cooperative cancellation flag that is shared between the caller and every
    loop of a matrix profile computation

    The computation polls the token once every `config.STOMPY_CANCEL_STRIDE` query
    subsequences. Cancelling is advisory: running loops stop at their next poll
    and no thread is ever terminated.

    Parameters
    ----------
    parent : CancellationToken, default None
        A token whose cancellation is also reported by this one. Cancelling this
        token leaves `parent` untouched.

    Examples
    --------
    >>> import stompy
    >>> token = stompy.CancellationToken()
    >>> token.cancel()
    >>> token.cancelled
    True
    """

    def __init__(self, parent=None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self):
        """
        Request cancellation

        Parameters
        ----------
        None

        Returns
        -------
        None
        """
        self._event.set()

    @property
    def cancelled(self):
        """
        `True` once `cancel` has been called on this token or its parent
        """
        if self._parent is not None and self._parent.cancelled:
            return True
        return self._event.is_set()

    def raise_if_cancelled(self):
        """
        Raise `CancellationRequested` if the token has been cancelled

        Parameters
        ----------
        None

        Returns
        -------
        None
        """
        if self._parent is not None:
            self._parent.raise_if_cancelled()
        if self._event.is_set():
            raise CancellationRequested("The matrix profile computation was cancelled")


@contextlib.contextmanager
def cancel_on_interrupt(token=None):
    """
    Cancel `token` when the process receives `SIGINT` (e.g., Ctrl-C) while the
    context is active, instead of raising `KeyboardInterrupt`

    Signal handlers may only be installed from the main thread. Elsewhere, the
    token is yielded unchanged and interrupts keep their default behavior.

    Parameters
    ----------
    token : CancellationToken, default None
        The token to cancel. A new token is created when `None`.

    Yields
    ------
    token : CancellationToken
        The token that is cancelled on interrupt
    """
    if token is None:
        token = CancellationToken()

    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def _handler(signum, frame):
        logger.warning("Interrupt received, partial results will be returned.")
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
