"""
PyMancer exercise catalog
The learning chapters, their token choices, and the acceptance check for each
"""

from typing import Callable, Dict, List, Optional

from error_handling import ExecutionResult
from interpreter import execute_program, make_execution_context
from parsing import DEFAULT_PLACEHOLDER


ACCEPTED_MESSAGE = "Module complete."
REJECTED_MESSAGE = "The ritual completed but the logic didn't satisfy the Oracle's requirements."
FAILED_MESSAGE = "Syntax error detected in the ritual."


# ============================================================================
# DATA STRUCTURES (Dictionaries)
# ============================================================================

def make_chapter(
    chapter_id: int,
    title: str,
    difficulty: str,
    task: str,
    hint: str,
    starter_code: str,
    tokens: List[str],
    validate: Callable[[str, str], bool]
) -> Dict:
  """Create a chapter; validate receives (code, output)"""
  return {
      'id': chapter_id,
      'title': title,
      'difficulty': difficulty,
      'task': task,
      'hint': hint,
      'starter_code': starter_code,
      'tokens': tokens,
      'validate': validate,
  }


CHAPTERS: List[Dict] = [
    make_chapter(
        1, "The Sealed Gates", "Beginner",
        "Complete the code to set the status variable to the string 'authorized'.",
        "Use quotes for strings: status = 'authorized'",
        "# Define entry status\n"
        "status = ???\n"
        "\n"
        "if status == 'authorized':\n"
        "    print('The gate glows blue and swings open.')",
        ["'locked'", "'authorized'", "True", "False"],
        lambda code, output: "swings open" in output,
    ),
    make_chapter(
        2, "The Mana Well", "Beginner",
        "Assign the integer 100 to the variable mana_level.",
        "Numbers don't need quotes: mana_level = 100",
        "mana_level = ???\n"
        "\n"
        "if mana_level == 100:\n"
        "    print('Pure arcane water gushes forth!')",
        ["50", "100", "'100'", "0"],
        lambda code, output: "water gushes forth" in output,
    ),
    make_chapter(
        3, "The Gargoyle Orbs", "Intermediate",
        "Use Boolean values to activate both orbs.",
        "In Python, booleans are True and False (Case Sensitive).",
        "left_orb = ???\n"
        "right_orb = ???\n"
        "\n"
        "if left_orb and right_orb:\n"
        "    print('The path is clear.')",
        ["True", "False", "'True'", "1"],
        lambda code, output: "path is clear" in output,
    ),
    make_chapter(
        4, "Brewing Clarity", "Intermediate",
        "Use the .append() method to add 'Moonlight' to the ingredients.",
        "Methods are called with dots: list.append('item')",
        "ingredients = ['Sage', 'Water']\n"
        "ingredients.???('Moonlight')\n"
        "\n"
        "if 'Moonlight' in ingredients:\n"
        "    print('The brew sparkles with silver light.')",
        ["push", "append", "add", "insert"],
        lambda code, output: "sparkles with silver light" in output,
    ),
    make_chapter(
        5, "The Hydra's Trial", "Advanced",
        "Use a for loop to iterate through the heads and print 'Strike!'.",
        "The syntax is: for item in list:",
        "heads = ['Alpha', 'Beta', 'Gamma']\n"
        "??? head in heads:\n"
        "    print('Strike!')",
        ["while", "for", "if", "each"],
        lambda code, output: output.count("Strike!") >= 3,
    ),
    make_chapter(
        6, "The Oracle's Count", "Advanced",
        "Use the len() function to get the count of souls.",
        "len(list_name) returns the number of items.",
        "souls = ['Merlin', 'Arthur', 'Gwen']\n"
        "count = ???(souls)\n"
        "\n"
        "if count == 3:\n"
        "    print('The Oracle nods in approval.')",
        ["size", "count", "len", "length"],
        lambda code, output: "approval" in output,
    ),
]


# ============================================================================
# CATALOG OPERATIONS
# ============================================================================

def get_chapter(chapter_id: int) -> Optional[Dict]:
  for chapter in CHAPTERS:
    if chapter['id'] == chapter_id:
      return chapter
  return None


def count_placeholders(code: str, placeholder: str = DEFAULT_PLACEHOLDER) -> int:
  return code.count(placeholder)


def fill_placeholders(code: str, choices: List[str],
                      placeholder: str = DEFAULT_PLACEHOLDER) -> str:
  """
  Replace placeholders left to right, one choice per marker.

  Fewer choices than markers leaves the rest unresolved; more choices than
  markers is an error.
  """
  if len(choices) > count_placeholders(code, placeholder):
    raise ValueError(
        f"{len(choices)} choices given for {count_placeholders(code, placeholder)} placeholders")
  for choice in choices:
    code = code.replace(placeholder, choice, 1)
  return code


def evaluate_attempt(chapter: Dict, code: str, context: Optional[Dict] = None) -> Dict:
  """
  Run a player's code for a chapter and judge it.

  Returns a dict with the ExecutionResult, whether the chapter accepted the
  output, and a feedback message for the player.
  """
  if context is None:
    context = make_execution_context()
  result: ExecutionResult = execute_program(code, context)

  if not result.success:
    message = str(result.error) if result.error else FAILED_MESSAGE
    return {'result': result, 'accepted': False, 'message': message}

  accepted = bool(chapter['validate'](code, result.output))
  return {
      'result': result,
      'accepted': accepted,
      'message': ACCEPTED_MESSAGE if accepted else REJECTED_MESSAGE,
  }
