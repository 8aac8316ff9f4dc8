"""Scriptable MCP server used by the subprocess tests.

Standard library only, so it runs under ``sys.executable`` without the
package installed. Speaks newline-delimited JSON-RPC on stdin/stdout.

Modes (``--mode``):
    normal            well-behaved server
    silent            reads requests, never answers
    bad-handshake     initialize result without protocolVersion
    error-handshake   initialize answered with a JSON-RPC error
    exit-on-start     writes to stderr and exits with status 3
    garbage           writes a non-JSON line before every response
    broken-resources  resources/list answers with an error
"""

import argparse
import json
import os
import sys
import threading
import time

PROTOCOL_VERSION = "2024-11-05"

TOOLS = {
    "echo": "Echo the text argument",
    "sleep": "Answer after `seconds`, echoing `text`",
    "get_env": "Return an environment variable",
    "get_active_file": "Active editor file",
    "get_project_info": "Project of the active file",
    "get_glossary": "User glossary",
    "get_recent_interactions": "Recent dictation snippets",
    "fail": "Always answers isError",
    "notify": "Send a notification, then answer",
    "ask_client": "Send a request to the client, then answer",
    "client_replies": "Replies received for server-initiated requests",
    "crash": "Exit without answering",
}

_write_lock = threading.Lock()
_client_replies = []


def write(message):
    with _write_lock:
        sys.stdout.write(json.dumps(message) + "\n")
        sys.stdout.flush()


def write_raw(line):
    with _write_lock:
        sys.stdout.write(line + "\n")
        sys.stdout.flush()


def text_result(text, is_error=False):
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def json_result(payload):
    return text_result(json.dumps(payload))


def respond(request_id, result=None, error=None, garbage=False):
    if garbage:
        write_raw("this is not json {")
    message = {"jsonrpc": "2.0", "id": request_id}
    if error is not None:
        message["error"] = error
    else:
        message["result"] = result
    write(message)


def call_tool(request_id, name, arguments, garbage):
    if name == "echo":
        return text_result(str(arguments.get("text", "")))
    if name == "sleep":
        # Answer from a thread so later requests overtake this one
        def delayed():
            time.sleep(float(arguments.get("seconds", 0.1)))
            respond(request_id, text_result(str(arguments.get("text", ""))), garbage=garbage)

        threading.Thread(target=delayed, daemon=True).start()
        return None
    if name == "get_env":
        return text_result(os.environ.get(str(arguments.get("name", "")), ""))
    if name == "get_active_file":
        return json_result(
            {
                "path": "/work/app/main.py",
                "language": "python",
                "cursorPosition": {"line": 3, "column": 7},
                "selectedText": os.environ.get("FAKE_SELECTED_TEXT", "print('hi')"),
            }
        )
    if name == "get_project_info":
        return json_result({"name": "app", "rootPath": "/work/app", "language": "python"})
    if name == "get_glossary":
        return json_result([{"term": "API", "replacement": "A P I"}])
    if name == "get_recent_interactions":
        return json_result(["first note", "second note"])
    if name == "fail":
        return text_result("tool failed on purpose", is_error=True)
    if name == "notify":
        write(
            {
                "jsonrpc": "2.0",
                "method": "notifications/message",
                "params": {"level": "info", "data": arguments.get("text", "hello")},
            }
        )
        return text_result("notified")
    if name == "ask_client":
        write({"jsonrpc": "2.0", "id": "srv-1", "method": "sampling/createMessage", "params": {}})
        return text_result("asked")
    if name == "client_replies":
        return json_result(_client_replies)
    if name == "crash":
        sys.stderr.write("crashing on request\n")
        sys.stderr.flush()
        os._exit(1)
    return text_result(f"Unknown tool: {name}", is_error=True)


def handle(message, args, advertised):
    garbage = args.mode == "garbage"
    method = message.get("method")
    request_id = message.get("id")

    if method is None:
        # A response to one of our server-initiated requests
        _client_replies.append(message)
        return
    if request_id is None:
        return

    if args.mode == "silent":
        return

    if method == "initialize":
        if args.mode == "bad-handshake":
            respond(request_id, {"capabilities": {}})
        elif args.mode == "error-handshake":
            respond(request_id, error={"code": -32603, "message": "not today"})
        else:
            respond(
                request_id,
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
                    "serverInfo": {"name": args.name, "version": "1.0.0"},
                },
                garbage=garbage,
            )
    elif method == "tools/list":
        tools = [
            {
                "name": name,
                "description": TOOLS[name],
                "inputSchema": {"type": "object", "properties": {}},
            }
            for name in advertised
        ]
        respond(request_id, {"tools": tools}, garbage=garbage)
    elif method == "resources/list":
        if args.mode == "broken-resources":
            respond(request_id, error={"code": -32603, "message": "resources unavailable"})
        else:
            respond(
                request_id,
                {"resources": [{"uri": "fake://readme", "name": "Readme", "mimeType": "text/plain"}]},
                garbage=garbage,
            )
    elif method == "prompts/list":
        respond(request_id, {"prompts": [{"name": "summarize"}]}, garbage=garbage)
    elif method == "ping":
        respond(request_id, {}, garbage=garbage)
    elif method == "tools/call":
        params = message.get("params") or {}
        result = call_tool(request_id, params.get("name"), params.get("arguments") or {}, garbage)
        if result is not None:
            respond(request_id, result, garbage=garbage)
    else:
        respond(request_id, error={"code": -32601, "message": f"Method not found: {method}"})


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", default="normal")
    parser.add_argument("--name", default="fake-server")
    parser.add_argument("--tools", default=",".join(TOOLS))
    args = parser.parse_args()
    advertised = [name for name in args.tools.split(",") if name in TOOLS]

    sys.stderr.write(f"fake server {args.name} starting in {args.mode} mode\n")
    sys.stderr.flush()
    if args.mode == "exit-on-start":
        sys.stderr.write("fatal: cannot start\n")
        sys.stderr.flush()
        sys.exit(3)

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except ValueError:
            continue
        handle(message, args, advertised)


if __name__ == "__main__":
    main()
