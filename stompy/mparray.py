# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import numpy as np

from . import config


class mparray(np.ndarray):
    """
    A matrix profile convenience class that subclasses the numpy ndarray

    The first column holds the matrix profile and the second column holds the
    1-based matrix profile indices.

    Parameters
    ----------
    cls : class
        The base class

    input_array : ndarray
        The input `numpy` array to be subclassed

    m : int
        Window size

    ez : float
        The exclusion zone fraction that was used

    partial : bool
        `True` if the computation was cancelled before it completed

    Attributes
    ----------
    P_ : numpy.ndarray
        The matrix profile. Subsequences without a match are `np.inf`.

    I_ : numpy.ndarray
        The 1-based matrix profile indices. Subsequences without a match hold
        `config.STOMPY_UNSET_INDEX`.

    is_set_ : numpy.ndarray
        A boolean array that indicates whether a subsequence has a match (True)

    partial_ : bool
        `True` if the computation was cancelled before it completed

    ez_ : float
        The exclusion zone fraction that was used
    """

    def __new__(cls, input_array, m, ez, partial=False):
        """
        Create the ndarray instance of our type, given the usual
        ndarray input arguments.  This will call the standard
        ndarray constructor, but return an object of our type.
        It also triggers a call mparray.__array_finalize__

        Parameters
        ----------
        cls : class
            The base class

        input_array : ndarray
            The input `numpy` array to be subclassed

        m : int
            Window size

        ez : float
            The exclusion zone fraction that was used

        partial : bool, default False
            `True` if the computation was cancelled before it completed
        """
        obj = np.asarray(input_array).view(cls)
        obj._m = m
        obj._ez = ez
        obj._partial = bool(partial)
        # All new attributes will also need to be added to the `__array_finalize__`
        # function below so that "new-from-template" objects (e.g., an array slice)
        # will also contain the same new attributes
        return obj

    def __array_finalize__(self, obj):
        """
        Finalize the array

        Parameters
        ----------
        obj : object
            This is the class object
        """
        if obj is None:  # pragma: no cover
            return
        # The lines below ensure that child objects that are created from a slice
        # of an `mparray` will also inherit the attributes from the parent `mparray`
        self._m = getattr(obj, "_m", None)
        self._ez = getattr(obj, "_ez", None)
        self._partial = getattr(obj, "_partial", False)

    @property
    def P_(self):
        """
        Matrix profile values
        """
        return np.asarray(self[:, 0]).astype(np.float64)

    @property
    def I_(self):
        """
        Nearest neighbor indices (1-based)
        """
        return np.asarray(self[:, 1]).astype(np.int64)

    @property
    def is_set_(self):
        """
        Whether a nearest neighbor was found
        """
        return self.I_ != config.STOMPY_UNSET_INDEX

    @property
    def partial_(self):
        """
        Whether the computation was cancelled before it completed
        """
        return self._partial

    @property
    def ez_(self):
        """
        The exclusion zone fraction
        """
        return self._ez

    @property
    def m_(self):
        """
        Window size
        """
        return self._m
