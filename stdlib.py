"""
PyMancer Standard Library
Runtime values and the built-in operations over them
Values are plain dictionaries tagged with their kind
"""

from typing import Any, Callable, Dict, Optional

from error_handling import PyMancerSyntaxError
from utilities import (
  is_value_dict,
  no_len_error,
  no_attribute_error,
  not_boolean_error,
  arity_error,
)


STRING = "String"
INTEGER = "Integer"
BOOLEAN = "Boolean"
LIST = "List"


# ============================================================================
# VALUE CONSTRUCTION
# ============================================================================

def make_value(value: Any, type_name: str) -> Dict:
  """Create a runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def is_list(val: Dict) -> bool:
  return is_value_dict(val) and val['type'] == LIST


# ============================================================================
# RENDERING
# ============================================================================

def pymancer_show(value: Dict) -> str:
  """Literal form of a value, as it appears inside a rendered list"""
  if value['type'] == STRING:
    return repr(value['value'])
  elif value['type'] == INTEGER:
    return str(value['value'])
  elif value['type'] == BOOLEAN:
    return "True" if value['value'] else "False"
  elif value['type'] == LIST:
    return "[" + ", ".join(pymancer_show(elem) for elem in value['value']) + "]"
  else:
    return f"<{value['type']}>"


def pymancer_render(value: Dict) -> str:
  """Text written by print(): strings unquoted, everything else literal"""
  if value['type'] == STRING:
    return value['value']
  return pymancer_show(value)


# ============================================================================
# COMPARISON
# ============================================================================

def values_equal(left: Dict, right: Dict) -> bool:
  """Value equality without coercion; lists only equal themselves"""
  if left['type'] != right['type']:
    return False
  if left['type'] == LIST:
    return left['value'] is right['value']
  return left['value'] == right['value']


def pymancer_contains(container: Dict, item: Dict) -> bool:
  """Membership by value equality; container must already be a List"""
  return any(values_equal(elem, item) for elem in container['value'])


def pymancer_truth(value: Dict) -> bool:
  """Coerce a bare condition; only booleans are accepted"""
  if value['type'] != BOOLEAN:
    raise not_boolean_error(value)
  return value['value']


# ============================================================================
# BUILT-IN FUNCTIONS
# ============================================================================

def pymancer_len(value: Dict) -> Dict:
  """Get the element count of a list"""
  if value['type'] != LIST:
    raise no_len_error(value)
  return make_value(len(value['value']), INTEGER)


def pymancer_print(value: Dict) -> Dict:
  raise PyMancerSyntaxError("print() can only be used as a statement")


BUILTIN_FUNCTIONS: Dict[str, Callable[[Dict], Dict]] = {
    'len': pymancer_len,
    'print': pymancer_print,
}


# ============================================================================
# LIST METHODS
# ============================================================================

def list_append(target: Dict, argument: Optional[Dict]) -> None:
  """Append in place, so every name bound to the list sees the new element"""
  if argument is None:
    raise arity_error("append", 1, 0)
  target['value'].append(argument)


LIST_METHODS: Dict[str, Callable[[Dict, Optional[Dict]], None]] = {
    'append': list_append,
}


def resolve_list_method(target: Dict, method_name: str) -> Callable[[Dict, Optional[Dict]], None]:
  """Find a supported method on a target, or fail the way Python would"""
  if target['type'] != LIST or method_name not in LIST_METHODS:
    raise no_attribute_error(target, method_name)
  return LIST_METHODS[method_name]
