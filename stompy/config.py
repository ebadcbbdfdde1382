# STUMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# STUMPY is a trademark of TD Ameritrade IP Company, Inc. All rights reserved.

import warnings

import numpy as np

_STOMPY_DEFAULTS = {
    "STOMPY_STDDEV_THRESHOLD": np.finfo(np.float64).eps,
    "STOMPY_EZ": 0.5,
    "STOMPY_CANCEL_STRIDE": 100,
    "STOMPY_MASS_K": 256,
    "STOMPY_GRAIN": 2048,
    "STOMPY_UNSET_INDEX": -1,
    "STOMPY_TOO_SMALL_THRESHOLD": 10e-6,
    "STOMPY_TEST_PRECISION": 5,
    "STOMPY_FASTMATH_FLAGS": {"nsz", "arcp", "contract", "afn", "reassoc"},
}

STOMPY_STDDEV_THRESHOLD = _STOMPY_DEFAULTS["STOMPY_STDDEV_THRESHOLD"]
STOMPY_EZ = _STOMPY_DEFAULTS["STOMPY_EZ"]
STOMPY_CANCEL_STRIDE = _STOMPY_DEFAULTS["STOMPY_CANCEL_STRIDE"]
STOMPY_MASS_K = _STOMPY_DEFAULTS["STOMPY_MASS_K"]
STOMPY_GRAIN = _STOMPY_DEFAULTS["STOMPY_GRAIN"]
STOMPY_UNSET_INDEX = _STOMPY_DEFAULTS["STOMPY_UNSET_INDEX"]
STOMPY_TOO_SMALL_THRESHOLD = _STOMPY_DEFAULTS["STOMPY_TOO_SMALL_THRESHOLD"]
STOMPY_TEST_PRECISION = _STOMPY_DEFAULTS["STOMPY_TEST_PRECISION"]
STOMPY_FASTMATH_FLAGS = _STOMPY_DEFAULTS["STOMPY_FASTMATH_FLAGS"]


def _reset(var=None):
    """
    Reset the value of a configuration variable(s) to their default value(s)

    Parameters
    ----------
    var : str, default None
        The name of the configuration variable. If None, then all
        configuration variables are reset to their default values.

    Returns
    -------
    None
    """
    config_vars = [
        k for k, _ in globals().items() if k.isupper() and k.startswith("STOMPY")
    ]

    if var is None:
        for config_var in config_vars:
            globals()[config_var] = _STOMPY_DEFAULTS[config_var]
    elif var in config_vars:
        globals()[var] = _STOMPY_DEFAULTS[var]
    else:
        msg = (
            f"Configuration reset was skipped for unrecognized '_STOMPY_DEFAULT[{var}]'"
        )
        warnings.warn(msg)

    return
