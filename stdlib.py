"""
lamb Standard Library
The builtin capabilities reached through reserved parameter names
Values are the runtime dictionaries used by the interpreter
"""

from typing import Dict, Callable, Any, List
from contextlib import contextmanager
import codecs
import logging
import os
import select
import sys
import time

from error_handling import LambEvaluationError
from utilities import format_number, is_literal, to_u64, type_mismatch_error

# Raw key reading is only available on POSIX terminals
try:
  import termios
  import tty
  TERMIOS_AVAILABLE = True
except ImportError:
  TERMIOS_AVAILABLE = False


logger = logging.getLogger(__name__)

ENTER = 10
ESCAPE = '\x1b'

# Longest single time.sleep call, in seconds
SLEEP_CHUNK_SECONDS = 86400.0


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def make_value(value: Any, type_name: str = "Literal") -> Dict:
  """Create an immutable runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def write_text(text: str) -> None:
  sys.stdout.write(text)
  sys.stdout.flush()


def write_byte(byte: int) -> None:
  """Write one raw byte to stdout, through the binary buffer when there is one"""
  sys.stdout.flush()
  buffer = getattr(sys.stdout, 'buffer', None)
  if buffer is not None:
    buffer.write(bytes([byte]))
    buffer.flush()
  else:
    sys.stdout.write(chr(byte))
  sys.stdout.flush()


# ============================================================================
# KEY INPUT
# ============================================================================

def stdin_is_terminal() -> bool:
  try:
    return sys.stdin.isatty()
  except (AttributeError, ValueError, OSError):
    return False


@contextmanager
def unbuffered_terminal():
  """Put stdin into cbreak mode for the duration of the block, when stdin is a terminal"""
  if not TERMIOS_AVAILABLE or not stdin_is_terminal():
    yield
    return

  fd = sys.stdin.fileno()
  saved = termios.tcgetattr(fd)
  try:
    tty.setcbreak(fd)
    yield
  finally:
    termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def raw_terminal() -> bool:
  return TERMIOS_AVAILABLE and stdin_is_terminal()


def input_pending() -> bool:
  """True when more input can be read without blocking"""
  if not raw_terminal():
    return True
  ready, _, _ = select.select([sys.stdin], [], [], 0)
  return bool(ready)


def read_terminal_char() -> str:
  """Read one character straight from the terminal file descriptor"""
  fd = sys.stdin.fileno()
  decoder = codecs.getincrementaldecoder('utf-8')('replace')
  while True:
    data = os.read(fd, 1)
    if not data:
      return decoder.decode(b'', final=True)
    ch = decoder.decode(data)
    if ch:
      return ch


def read_char() -> str:
  """Read one character from stdin, blocking"""
  if raw_terminal():
    # select only sees bytes not yet pulled into the text buffer
    ch = read_terminal_char()
  else:
    ch = sys.stdin.read(1)
  if ch == '':
    raise LambEvaluationError("λinput reached end of input")
  return ch


def read_key() -> str:
  """
  Block until a key press arrives and return it

  Enter is normalised to '\\n'. Terminal escape sequences (arrow keys and
  friends) are consumed and skipped. A lone Escape press with nothing
  queued behind it is skipped on its own.
  """
  while True:
    ch = read_char()
    if ch in ('\r', '\n'):
      return '\n'
    if ch == ESCAPE:
      if input_pending():
        skip_escape_sequence()
      continue
    return ch


def skip_escape_sequence() -> None:
  ch = read_char()
  if ch not in ('[', 'O'):
    return
  while True:
    ch = read_char()
    if ch.isalpha() or ch == '~':
      return


# ============================================================================
# CAPABILITIES
# ============================================================================

def lamb_print(value: Dict) -> Dict:
  """Write a number's decimal text to stdout"""
  if not is_literal(value):
    raise type_mismatch_error("λprint", "a numeric value", value)
  write_text(format_number(value['value']))
  return make_value(value['value'])


def lamb_ascii(value: Dict) -> Dict:
  """Echo a byte to stdout"""
  if not is_literal(value) or not 0 <= value['value'] < 255:
    raise LambEvaluationError(
        "λascii only takes ASCII values in decimal form, ranging from 0 to 254.")
  byte = int(value['value'])
  write_byte(byte)
  return make_value(float(byte))


def lamb_time(value: Dict) -> Dict:
  """Current epoch time in milliseconds, the input is ignored"""
  return make_value(float(time.time_ns() // 1_000_000))


def lamb_sleep(value: Dict) -> Dict:
  """Block for the given number of milliseconds"""
  if not is_literal(value):
    raise type_mismatch_error("λsleep", "a numeric value", value)
  millis = value['value']
  remaining = to_u64(millis) / 1000
  while remaining > 0:
    chunk = min(remaining, SLEEP_CHUNK_SECONDS)
    time.sleep(chunk)
    remaining -= chunk
  return make_value(millis)


def input_char() -> Dict:
  """Block for a single key press and return its character code"""
  with unbuffered_terminal():
    key = read_key()
  if key == '\n':
    return make_value(float(ENTER))
  return make_value(float(ord(key) & 0xFF))


def input_numeric() -> Dict:
  """Interactive numeral entry terminated by Enter"""
  text = ""
  dot_allowed = True
  e_allowed = False
  sign_allowed = False

  with unbuffered_terminal():
    while True:
      key = read_key()
      if key == '\n':
        break
      if key in "0123456789":
        text += key
        e_allowed = 'e' not in text
        sign_allowed = False
      elif key == '.' and dot_allowed:
        text += key
        dot_allowed = False
      elif key in ('e', 'E') and e_allowed:
        text += 'e'
        dot_allowed = False
        e_allowed = False
        sign_allowed = True
      elif key in ('+', '-') and sign_allowed:
        text += key
        sign_allowed = False
      else:
        continue
      write_text(text[-1])

  logger.debug("numeric input %r", text)
  try:
    return make_value(float(text))
  except ValueError:
    raise LambEvaluationError(f"invalid numeric input: {text!r}") from None


def lamb_input(value: Dict) -> Dict:
  """Read from the keyboard: mode 0 reads a key, mode 1 reads a number"""
  if is_literal(value, 0):
    return input_char()
  if is_literal(value, 1):
    return input_numeric()
  raise LambEvaluationError("λinput only takes numeric value either, 0, or 1.")


# ============================================================================
# BUILT-IN CAPABILITY REGISTRY
# ============================================================================

def make_capability(name: str, func: Callable[[Dict], Dict], description: str = "") -> Dict:
  """Create a builtin capability record"""
  return {
      'type': 'capability',
      'name': name,
      'func': func,
      'description': description
  }


# Keyed by the reserved parameter name that triggers the capability
BUILTIN_CAPABILITIES: Dict[str, Dict] = {
    "ascii": make_capability("ascii", lamb_ascii, "byte 0..254 -> writes the raw byte"),
    "input": make_capability("input", lamb_input, "0 -> key code, 1 -> typed number"),
    "time": make_capability("time", lamb_time, "_ -> epoch milliseconds"),
    "print": make_capability("print", lamb_print, "number -> writes its decimal text"),
    "sleep": make_capability("sleep", lamb_sleep, "milliseconds -> blocks that long"),
}


def is_capability_name(name: str) -> bool:
  return name in BUILTIN_CAPABILITIES


def invoke_capability(name: str, value: Dict) -> Dict:
  """Run the capability registered under name with value as its input"""
  capability = BUILTIN_CAPABILITIES[name]
  logger.debug("invoking capability %s", name)
  return capability['func'](value)


def list_capabilities() -> List[str]:
  """List all reserved capability names"""
  return list(BUILTIN_CAPABILITIES.keys())
