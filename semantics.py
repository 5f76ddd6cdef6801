"""
PyMancer block analysis
Walks the source lines in order, pairing each if/for header with its body line
"""

from dataclasses import replace
from typing import Iterator, List, Optional

from error_handling import PyMancerSyntaxError
from parsing import CSTNode, PyMancerParser, SourceSpan, BLOCK_HEADERS, COMMENT


def find_body(spans: List[SourceSpan], index: int) -> Optional[SourceSpan]:
  """
  Return the line that follows the header at spans[index], if any.

  That line belongs to the header whether or not it is indented. A blank
  line in between means nothing follows.
  """
  if index + 1 >= len(spans):
    return None
  candidate = spans[index + 1]
  if candidate.start_line != spans[index].start_line + 1:
    return None
  return candidate


def attach_body(parser: PyMancerParser, header: CSTNode, follower: SourceSpan) -> CSTNode:
  """Give a header its body; a non-indented follower is skipped unparsed"""
  if not follower.text[0].isspace():
    return header

  body = parser.parse_source_line(follower)
  if body.type in BLOCK_HEADERS:
    raise PyMancerSyntaxError(
      "nested blocks are not supported; the body must be a single statement",
      line=body.line,
    )
  if body.type == COMMENT:
    return header
  return replace(header, children=[body])


def iter_program(parser: PyMancerParser, text: str,
                 filename: str = "<input>") -> Iterator[CSTNode]:
  """
  Yield executable statements one at a time.

  Each line is parsed only when the walk reaches it, so a bad line fails
  after everything before it has run. Comment lines are dropped.
  """
  spans = parser.scan_lines(text, filename)
  i = 0

  while i < len(spans):
    node = parser.parse_source_line(spans[i])

    if node.type == COMMENT:
      i += 1
      continue

    if node.indented:
      raise PyMancerSyntaxError("unexpected indent", line=node.line)

    if node.type in BLOCK_HEADERS:
      follower = find_body(spans, i)
      if follower is not None:
        i += 1
        node = attach_body(parser, node, follower)

    yield node
    i += 1


def analyze_program(parser: PyMancerParser, text: str,
                    filename: str = "<input>") -> List[CSTNode]:
  """Collect the whole statement list, failing on the first bad line"""
  return list(iter_program(parser, text, filename))
