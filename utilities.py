"""
Utilities module for the PyMancer interpreter
Common helpers for inspecting values and building runtime errors
"""

from typing import Any, Dict

from error_handling import (
  PyMancerNameError,
  PyMancerTypeError,
  PyMancerAttributeError,
)


# Python-facing names for each value kind, used in error messages
PYTHON_TYPE_NAMES = {
  'String': 'str',
  'Integer': 'int',
  'Boolean': 'bool',
  'List': 'list',
}


# ==================== VALUE INSPECTION UTILITIES ====================

def is_value_dict(val: Any) -> bool:
  """
  Check if value is a wrapped value dict

  Args:
    val: Value to check

  Returns:
    True if val is a dict with 'type' and 'value' keys
  """
  return isinstance(val, dict) and 'type' in val and 'value' in val


def python_type_name(val: Dict) -> str:
  """
  Name a value's kind the way Python would in an error message

  Examples:
    python_type_name({'type': 'Integer', 'value': 3}) -> 'int'
  """
  return PYTHON_TYPE_NAMES.get(val.get('type'), val.get('type', 'object'))


# ==================== ERROR MESSAGE BUILDERS ====================

def undefined_name_error(name: str) -> PyMancerNameError:
  return PyMancerNameError(f"name '{name}' is not defined")


def not_iterable_error(val: Dict) -> PyMancerTypeError:
  return PyMancerTypeError(f"'{python_type_name(val)}' object is not iterable")


def membership_error(val: Dict) -> PyMancerTypeError:
  return PyMancerTypeError(
    f"argument of type '{python_type_name(val)}' is not iterable"
  )


def no_len_error(val: Dict) -> PyMancerTypeError:
  return PyMancerTypeError(f"object of type '{python_type_name(val)}' has no len()")


def not_callable_error(val: Dict) -> PyMancerTypeError:
  return PyMancerTypeError(f"'{python_type_name(val)}' object is not callable")


def not_boolean_error(val: Dict) -> PyMancerTypeError:
  """
  Generate the error for a bare condition that is not a boolean

  Args:
    val: The evaluated condition value

  Returns:
    PyMancerTypeError with formatted message
  """
  return PyMancerTypeError(
    f"condition must be True or False, got '{python_type_name(val)}'"
  )


def no_attribute_error(val: Dict, attribute: str) -> PyMancerAttributeError:
  """
  Generate attribute error for an unsupported method

  Args:
    val: Target value dict
    attribute: Method name that was invoked

  Returns:
    PyMancerAttributeError with formatted message
  """
  return PyMancerAttributeError(
    f"'{python_type_name(val)}' object has no attribute '{attribute}'"
  )


def arity_error(func_name: str, expected: int, got: int) -> PyMancerTypeError:
  """
  Generate arity mismatch error

  Args:
    func_name: Function name
    expected: Expected number of arguments
    got: Actual number of arguments

  Returns:
    PyMancerTypeError with formatted message
  """
  plural = "argument" if expected == 1 else "arguments"
  return PyMancerTypeError(
    f"{func_name}() takes exactly {expected} {plural} ({got} given)"
  )
