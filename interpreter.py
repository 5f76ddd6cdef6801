"""
PyMancer Interpreter
Tree-walking evaluation of parsed restricted-Python programs
Each run owns its scope and output buffer; nothing is shared between runs
"""

from typing import Any, Dict, Iterable, List, Optional
import itertools
import logging
import threading

import pykka

from error_handling import (
  ExecutionResult,
  PyMancerError,
  PyMancerResourceError,
  PyMancerSyntaxError,
  classify_failure,
  failure_result,
  success_result,
)
from parsing import (
  CSTNode,
  PyMancerParser,
  create_parser,
  DEFAULT_PLACEHOLDER,
  METHOD_CALL,
  PRINT,
  ASSIGNMENT,
  IF,
  FOR,
)
from semantics import iter_program
from stdlib import (
  make_value,
  is_list,
  pymancer_render,
  pymancer_contains,
  pymancer_truth,
  values_equal,
  resolve_list_method,
  BUILTIN_FUNCTIONS,
  STRING,
  INTEGER,
  BOOLEAN,
  LIST,
)
from utilities import (
  undefined_name_error,
  not_iterable_error,
  membership_error,
  not_callable_error,
  arity_error,
)


logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10000


# ============================================================================
# EXECUTION CONTEXT AND STATE
# ============================================================================

def make_execution_context(placeholder: str = DEFAULT_PLACEHOLDER,
                           max_steps: int = DEFAULT_MAX_STEPS) -> Dict:
  """Create the per-run configuration"""
  if max_steps < 1:
    raise ValueError("max_steps must be at least 1")
  return {
      'placeholder': placeholder,
      'max_steps': max_steps,
  }


def make_execution_state(context: Dict) -> Dict:
  """Create the mutable state of one run: scope, printed lines, step count"""
  return {
      'scope': {},
      'output': [],
      'steps': 0,
      'context': context,
  }


# ============================================================================
# SCOPE OPERATIONS
# ============================================================================

def scope_bind(state: Dict, name: str, value: Dict) -> None:
  state['scope'][name] = value


def scope_lookup(state: Dict, name: str) -> Dict:
  """Look up a bound name, failing with NameError when it is absent"""
  if name not in state['scope']:
    raise undefined_name_error(name)
  return state['scope'][name]


# ============================================================================
# EXPRESSION EVALUATOR
# ============================================================================

def eval_expression(expr: Any, state: Dict) -> Dict:
  """Evaluate a (TAG, payload) expression tree to a runtime value"""
  tag, payload = expr

  if tag == "STRING":
    return make_value(payload, STRING)
  elif tag == "INTEGER":
    return make_value(payload, INTEGER)
  elif tag == "BOOLEAN":
    return make_value(payload, BOOLEAN)
  elif tag == "LIST":
    return make_value([eval_expression(item, state) for item in payload], LIST)
  elif tag == "IDENTIFIER":
    return scope_lookup(state, payload)
  elif tag == "CALL":
    return eval_call(payload, state)
  else:
    raise PyMancerSyntaxError(f"malformed expression: {tag}")


def eval_call(payload: Dict, state: Dict) -> Dict:
  """Call a builtin function with its single argument"""
  func_name = payload['function']

  if func_name in state['scope']:
    raise not_callable_error(state['scope'][func_name])
  if func_name not in BUILTIN_FUNCTIONS:
    raise undefined_name_error(func_name)
  if payload['argument'] is None:
    raise arity_error(func_name, 1, 0)

  argument = eval_expression(payload['argument'], state)
  return BUILTIN_FUNCTIONS[func_name](argument)


# ============================================================================
# CONDITION EVALUATOR
# ============================================================================

def eval_condition(cond: Any, state: Dict) -> bool:
  """Evaluate a (TAG, payload) condition tree to a Python bool"""
  tag, payload = cond

  if tag == "AND":
    # Short-circuits like Python: the right side is skipped when the left is false
    return eval_condition(payload['left'], state) and eval_condition(payload['right'], state)
  elif tag == "MEMBERSHIP":
    item = eval_expression(payload['item'], state)
    container = eval_expression(payload['container'], state)
    if not is_list(container):
      raise membership_error(container)
    return pymancer_contains(container, item)
  elif tag == "EQUALS":
    left = eval_expression(payload['left'], state)
    right = eval_expression(payload['right'], state)
    return values_equal(left, right)
  elif tag == "TRUTHY":
    return pymancer_truth(eval_expression(payload, state))
  else:
    raise PyMancerSyntaxError(f"malformed condition: {tag}")


# ============================================================================
# STATEMENT EXECUTOR
# ============================================================================

def count_step(state: Dict) -> None:
  state['steps'] += 1
  max_steps = state['context']['max_steps']
  if state['steps'] > max_steps:
    raise PyMancerResourceError(f"execution exceeded the limit of {max_steps} steps")


def exec_statement(node: CSTNode, state: Dict) -> None:
  """Execute one statement, tagging any failure with its source line"""
  logger.debug("Executing line %s: %s", node.line, node.type)
  try:
    count_step(state)
    handler = STATEMENT_HANDLERS.get(node.type)
    if handler is None:
      raise PyMancerSyntaxError(f"unsupported statement: {node.type}")
    handler(node, state)
  except PyMancerError as e:
    if e.line is None:
      e.line = node.line
    raise


def exec_assignment(node: CSTNode, state: Dict) -> None:
  value = eval_expression(node.value['value'], state)
  scope_bind(state, node.value['name'], value)


def exec_method_call(node: CSTNode, state: Dict) -> None:
  target = scope_lookup(state, node.value['target'])
  method = resolve_list_method(target, node.value['method'])
  argument_expr = node.value['argument']
  argument = eval_expression(argument_expr, state) if argument_expr is not None else None
  method(target, argument)


def exec_print(node: CSTNode, state: Dict) -> None:
  value = eval_expression(node.value['expression'], state)
  state['output'].append(pymancer_render(value))


def exec_body(node: CSTNode, state: Dict) -> None:
  """Run the single body line of a header, if it has one"""
  for child in node.children:
    exec_statement(child, state)


def exec_if(node: CSTNode, state: Dict) -> None:
  if eval_condition(node.value['condition'], state):
    exec_body(node, state)


def exec_for(node: CSTNode, state: Dict) -> None:
  items = scope_lookup(state, node.value['iterable'])
  if not is_list(items):
    raise not_iterable_error(items)

  # Iterates the live list, so appends made by the body are visited too
  for element in items['value']:
    scope_bind(state, node.value['variable'], element)
    exec_body(node, state)


STATEMENT_HANDLERS = {
    ASSIGNMENT: exec_assignment,
    METHOD_CALL: exec_method_call,
    PRINT: exec_print,
    IF: exec_if,
    FOR: exec_for,
}


def run_program(program: Iterable[CSTNode], state: Dict) -> None:
  for node in program:
    exec_statement(node, state)


# ============================================================================
# ENTRY POINTS
# ============================================================================

def execute_program(source: str, context: Optional[Dict] = None,
                    parser: Optional[PyMancerParser] = None) -> ExecutionResult:
  """
  Run a program and package the outcome.

  Never raises for problems in the program itself: every failure comes back
  as a result with success=False and the output printed up to that point.
  """
  if context is None:
    context = make_execution_context()
  if parser is None:
    parser = create_parser(context['placeholder'])

  state = make_execution_state(context)
  try:
    program = iter_program(parser, source)
    run_program(program, state)
  except PyMancerError as e:
    logger.debug("Run failed after %d steps: %s", state['steps'], e)
    return classify_failure(e, state['output'])

  logger.debug("Run finished after %d steps", state['steps'])
  return success_result(state['output'])


class PyMancerInterpreter:
  """
  Reusable front for execute_program with a fixed context.

  Safe to share between threads: the context is read-only and every call
  builds its own parser.
  """

  def __init__(self, context: Optional[Dict] = None):
    self.context = context or make_execution_context()

  def execute(self, source: str) -> ExecutionResult:
    return execute_program(source, self.context)


def create_interpreter(placeholder: str = DEFAULT_PLACEHOLDER,
                       max_steps: int = DEFAULT_MAX_STEPS) -> PyMancerInterpreter:
  """Factory function returning an interpreter"""
  return PyMancerInterpreter(make_execution_context(placeholder, max_steps))


# ============================================================================
# ACTOR SYSTEM (Using Pykka)
# ============================================================================

def timeout_result(timeout: float) -> ExecutionResult:
  return failure_result([], PyMancerResourceError(
      f"execution did not finish within {timeout} seconds").to_error_info())


class ExecutionActor(pykka.ThreadingActor):
  """Actor that runs programs sent to it as {'source': ...} messages"""

  def __init__(self, context: Optional[Dict] = None):
    super().__init__()
    self.interpreter = PyMancerInterpreter(context)

  def on_receive(self, message):
    return self.interpreter.execute(message['source'])


def run_with_timeout(source: str, timeout: float,
                     context: Optional[Dict] = None) -> ExecutionResult:
  """Run a program on its own actor, giving up after timeout seconds"""
  actor_ref = ExecutionActor.start(context)
  try:
    future = actor_ref.ask({'source': source}, block=False)
    return future.get(timeout=timeout)
  except pykka.Timeout:
    logger.warning("Program run timed out after %s seconds", timeout)
    return timeout_result(timeout)
  finally:
    actor_ref.stop(block=False)


class ExecutionPool:
  """Fixed set of execution actors serving runs round-robin"""

  def __init__(self, size: int = 4, context: Optional[Dict] = None):
    if size < 1:
      raise ValueError("pool size must be at least 1")
    self.actors: List[pykka.ActorRef] = [ExecutionActor.start(context) for _ in range(size)]
    self._next_actor = itertools.cycle(self.actors)
    self._lock = threading.Lock()

  def submit(self, source: str) -> pykka.Future:
    """Queue a run and return a future for its ExecutionResult"""
    with self._lock:
      actor_ref = next(self._next_actor)
    return actor_ref.ask({'source': source}, block=False)

  def run(self, source: str, timeout: Optional[float] = None) -> ExecutionResult:
    future = self.submit(source)
    try:
      return future.get(timeout=timeout)
    except pykka.Timeout:
      logger.warning("Pooled program run timed out after %s seconds", timeout)
      return timeout_result(timeout)

  def stop(self) -> None:
    """Terminate all actors"""
    for actor_ref in self.actors:
      actor_ref.stop()
    self.actors = []

  def __enter__(self) -> 'ExecutionPool':
    return self

  def __exit__(self, exc_type, exc, tb) -> None:
    self.stop()
