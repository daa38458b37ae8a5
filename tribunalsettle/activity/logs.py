"""
tribunalsettle/activity/logs.py

Transaction log scanner.

Runtime log lines interleave every program a transaction invokes, so
the scanner tracks the invoke stack and attributes each line to the
program on top of it:

    Program <id> invoke [<depth>]     push
    Program <id> success              pop
    Program <id> failed: <reason>     pop, and record the failure
    Program log: <text>               diagnostic text of the current program
    Program data: <base64>            structured event payload
    Program <id> consumed ...         ignored

Only lines attributed to the configured program are collected. A
payload that is not valid base64 is counted and skipped.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional


logger = logging.getLogger(__name__)

_INVOKE  = re.compile(r"^Program (\w+) invoke \[(\d+)\]$")
_SUCCESS = re.compile(r"^Program (\w+) success$")
_FAILED  = re.compile(r"^Program (\w+) failed: (.*)$")
_LOG     = "Program log: "
_DATA    = "Program data: "
_INSTRUCTION_PREFIX = "Instruction: "
_TRUNCATED = "Log truncated"


@dataclass
class LogScan:
    program_id:        str
    invoked:           bool = False
    payloads:          List[bytes] = field(default_factory=list)
    instruction_names: List[str] = field(default_factory=list)
    messages:          List[str] = field(default_factory=list)
    failed:            bool = False
    failure:           Optional[str] = None
    malformed:         int = 0
    truncated:         bool = False


def scan_logs(log_lines: List[str], program_id: str) -> LogScan:
    scan  = LogScan(program_id=program_id)
    stack: List[str] = []

    for line in log_lines:
        line = line.rstrip()

        m = _INVOKE.match(line)
        if m:
            stack.append(m.group(1))
            if m.group(1) == program_id:
                scan.invoked = True
            continue

        m = _SUCCESS.match(line)
        if m:
            _pop(stack, m.group(1))
            continue

        m = _FAILED.match(line)
        if m:
            if m.group(1) == program_id:
                scan.failed  = True
                scan.failure = m.group(2)
            _pop(stack, m.group(1))
            continue

        if line == _TRUNCATED:
            scan.truncated = True
            continue

        if not stack or stack[-1] != program_id:
            continue

        if line.startswith(_DATA):
            encoded = line[len(_DATA):].strip()
            try:
                scan.payloads.append(base64.b64decode(encoded, validate=True))
            except (binascii.Error, ValueError):
                scan.malformed += 1
                logger.debug("Skipping malformed program data line: %.40s", encoded)
            continue

        if line.startswith(_LOG):
            text = line[len(_LOG):]
            if text.startswith(_INSTRUCTION_PREFIX):
                scan.instruction_names.append(text[len(_INSTRUCTION_PREFIX):].strip())
            else:
                scan.messages.append(text)

    return scan


def _pop(stack: List[str], program: str) -> None:
    # Unwind to the matching frame; truncated logs can leave gaps.
    while stack:
        if stack.pop() == program:
            return
