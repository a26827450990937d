"""Collection of tools used by multiple components of the flow decomposition.

This collection is characterized by a certain degree of generality, the functions
cannot be attributed to a specific stage of the decomposition.
"""

import operator
from functools import reduce

import numpy as np

ALLOCATED_COLUMN_NAME = "Allocated Flow"
PST_COLUMN_NAME = "PST Flow"
AC_REFERENCE_FLOW_COLUMN_NAME = "Reference AC Flow"
DC_REFERENCE_FLOW_COLUMN_NAME = "Reference DC Flow"


def loop_flow_column(zone):
    """Return the component/column name of the loop flow originating in zone."""
    return f"Loop Flow from {zone}"

def split_length_in_ranges(step_size, length):
    """Split a range 0:N in a list of ranges with specified maximal length.

    Empty ranges are not returned, i.e. a length of zero returns an empty list.
    """
    step_size = int(step_size)
    if step_size < 1:
        raise ValueError("step_size has to be a positive integer")
    return [range(start, min(start + step_size, length)) for start in range(0, length, step_size)]

def sign(value):
    """Sign of value as float, 0 for 0."""
    return float(np.sign(value))

def default_options():
    """Returns the default options of the flow decomposition."""
    options = {
        "title": "default",
        "sensitivity": {
            "epsilon": 1e-5,
            "batch_size": 15000,
            "threads": 1,
            },
        "losses_compensation": {
            "enable": False,
            "epsilon": 1e-5,
            },
        "rescale": {
            "enable": False,
            "epsilon": 1e-9,
            },
        "load_flow": {
            "distributed_slack": True,
            "balance_type": "proportional_to_generation_p_max",
            "strict": False,
            },
        "results": {
            "save_intermediate": False,
            },
    }
    return options

def add_default_values_to_dict(value_dict, default_dict):
    """Combines values from user dict with default values from default_dict.

    Parameters
    ----------
    value_dict : dict
        Dict with values.
    default_dict : dict
        Dict containing default values that are added if not present in value_dict.

    Raises
    ------
    ValueError
        If value_dict contains a key that is not part of default_dict.
    """
    for i in _dict_generator(value_dict):
        try:
            parent = _getFromDict(default_dict, i[:-1])
        except (KeyError, TypeError):
            raise ValueError(".".join(i) + " is not a valid option")
        if not isinstance(parent, dict) or i[-1] not in parent:
            raise ValueError(".".join(i) + " is not a valid option")
        _setInDict(default_dict, i, _getFromDict(value_dict, i))
    return default_dict

def add_default_options(input_options):
    """Takes the loaded option dict and adds missing values from default options.

    Uses function that are a result from https://stackoverflow.com/a/14692747.

    Parameters
    ----------
    input_options : dict
        Options from user input.
    """
    default_option_values = default_options()
    options = add_default_values_to_dict(input_options, default_option_values)
    return options

def _dict_generator(indict, pre=None):
    """Flatten Option Dict.

    Source: https://stackoverflow.com/a/12507546.
    """
    pre = pre[:] if pre else []
    if isinstance(indict, dict):
        for key, value in indict.items():
            if isinstance(value, dict):
                for d in _dict_generator(value, pre + [key]):
                    yield d
            else:
                yield pre + [key]
    else:
        yield pre + [indict]

def _getFromDict(dataDict, mapList):
    return reduce(operator.getitem, mapList, dataDict)

def _setInDict(dataDict, mapList, value):
    _getFromDict(dataDict, mapList[:-1])[mapList[-1]] = value

def remove_empty_subdicts(old_dict):
    """Removing all empty subdicts.

    Based on https://stackoverflow.com/a/33529384.
    A dictionary is empty when values are empty string, None, {} or [].
    """
    new_dicts = {}
    for k, v in old_dict.items():
        if isinstance(v, dict):
            v = remove_empty_subdicts(v)
        if not v in (u'', None, {}, []):
            new_dicts[k] = v
    return new_dicts

