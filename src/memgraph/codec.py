"""DevTools protocol message codec.

Responses are parsed with ``ijson``'s event parser and assembled on an
explicit stack, so arbitrarily deep call trees never touch the interpreter's
recursion limit.
"""

import io
import json
from typing import Any

import ijson

from memgraph.errors import DecodeError
from memgraph.models import Acknowledgement, CallFrame, ProfileNode, ProfilePayload

RUN_IF_WAITING_FOR_DEBUGGER = "Runtime.runIfWaitingForDebugger"
START_SAMPLING = "HeapProfiler.startSampling"
GET_SAMPLING_PROFILE = "HeapProfiler.getSamplingProfile"

Response = ProfilePayload | Acknowledgement


def encode_command(command_id: int, method: str) -> str:
    """Encode a parameterless protocol command."""
    return json.dumps({"id": command_id, "method": method})


def _load(raw: bytes) -> Any:
    """Parse a JSON document without recursing on nesting depth."""
    containers: list[Any] = []
    keys: list[Any] = []
    result: Any = None

    for event, value in ijson.basic_parse(io.BytesIO(raw)):
        if event == "start_map":
            containers.append({})
            keys.append(None)
            continue
        if event == "start_array":
            containers.append([])
            continue
        if event == "map_key":
            keys[-1] = value
            continue
        if event == "end_map":
            keys.pop()
            value = containers.pop()
        elif event == "end_array":
            value = containers.pop()

        if not containers:
            result = value
        elif isinstance(containers[-1], list):
            containers[-1].append(value)
        else:
            containers[-1][keys[-1]] = value

    return result


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _node(raw: Any) -> tuple[ProfileNode, list[Any]]:
    """Build a childless node from its JSON form, returning its raw children."""
    if not isinstance(raw, dict):
        raise DecodeError(f"profile node must be an object, got {type(raw).__name__}")

    frame = raw.get("callFrame")
    if not isinstance(frame, dict):
        raise DecodeError("profile node has no callFrame object")
    function_name = frame.get("functionName")
    url = frame.get("url")
    if not isinstance(function_name, str) or not isinstance(url, str):
        raise DecodeError("callFrame functionName and url must be strings")

    self_size = raw.get("selfSize")
    if not _is_int(self_size) or self_size < 0:
        raise DecodeError(f"invalid selfSize {self_size!r}")

    children = raw.get("children", [])
    if not isinstance(children, list):
        raise DecodeError("profile node children must be an array")

    node = ProfileNode(CallFrame(function_name=function_name, url=url), self_size)
    return node, children


def _build_tree(head: Any) -> ProfileNode:
    root, raw_children = _node(head)
    pending = [(root, raw_children)]

    while pending:
        parent, raw_children = pending.pop()
        for raw_child in raw_children:
            child, grandchildren = _node(raw_child)
            parent.children.append(child)
            if grandchildren:
                pending.append((child, grandchildren))

    return root


def decode(raw: bytes | str) -> Response:
    """
    Decode one protocol response.

    A response whose ``result`` holds a ``profile`` object with a ``head``
    becomes a ProfilePayload; every other response with an integer ``id`` and
    an object ``result`` is an Acknowledgement. Anything else, including
    error responses and event notifications, raises DecodeError.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")

    try:
        message = _load(raw)
    except ijson.JSONError as e:
        raise DecodeError(f"malformed JSON: {e}") from e

    if not isinstance(message, dict):
        raise DecodeError("response is not a JSON object")

    message_id = message.get("id")
    result = message.get("result")
    if not _is_int(message_id) or not isinstance(result, dict):
        raise DecodeError(f"not a command response (keys: {sorted(message)})")

    if "profile" not in result:
        return Acknowledgement(id=message_id)

    profile = result["profile"]
    if not isinstance(profile, dict) or "head" not in profile:
        raise DecodeError("profile result without a head node")
    return ProfilePayload(head=_build_tree(profile["head"]))
