#!/usr/bin/env python3
"""
CLI for the rule/process compiler.

Usage:
    process-rule-compiler parse "If inventory is low AND orders are pending, create purchase request"
    process-rule-compiler graph "<rule text>"
    process-rule-compiler compile graph.json
    process-rule-compiler layout process.json [--default-action]
    process-rule-compiler ask "How do I connect entities?" [--graph graph.json]

Results are printed to stdout as JSON (ask prints plain text).
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional, Tuple

from .assistant import Assistant, AssistantContext
from .compiler import RuleCompiler
from .config import Settings
from .exceptions import CompilerError, DocumentError
from .graph_compiler import GraphCompiler
from .logging_setup import setup_logging
from .models import GraphEdge, GraphNode, Process
from .process_builder import default_process_action
from .rule_normalizer import JOIN_STRATEGIES

logger = logging.getLogger(__name__)


def load_json(path: str):
    """Read a JSON document from a file, or from stdin when path is '-'."""
    if path == "-":
        return json.load(sys.stdin)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_graph(path: str) -> Tuple[List[GraphNode], List[GraphEdge]]:
    data = load_json(path)
    if not isinstance(data, dict):
        raise DocumentError("Graph file must be a JSON object with nodes and edges")
    nodes = [GraphNode.from_dict(n) for n in data.get("nodes", [])]
    edges = [GraphEdge.from_dict(e) for e in data.get("edges", [])]
    return nodes, edges


def write_output(result, output: Optional[str]):
    text = json.dumps(result, indent=2, ensure_ascii=False)
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text + "\n")
        logger.info(f"Output written to: {output}")
    else:
        print(text)


def cmd_parse(args) -> Dict:
    compiler = RuleCompiler(args.join_strategy)
    if args.raw:
        return compiler.extractor.extract(args.text).to_dict()
    return compiler.compile_text(args.text).to_dict()


def cmd_graph(args) -> Dict:
    nodes, edges = RuleCompiler(args.join_strategy).text_to_graph(args.text)
    return {
        "nodes": [n.to_dict() for n in nodes],
        "edges": [e.to_dict() for e in edges],
    }


def cmd_compile(args) -> Optional[Dict]:
    nodes, edges = load_graph(args.graph)
    result = GraphCompiler().compile(nodes, edges)
    if not result.ready:
        raise CompilerError("Graph needs at least one entity node, a join node and an action node")
    return result.to_dict()


def cmd_layout(args) -> Dict:
    process = Process.from_dict(load_json(args.process))
    action = None
    if args.default_action and process.action is None:
        action = default_process_action()
    return RuleCompiler().layout_process(process, action).to_dict()


def cmd_ask(args) -> str:
    context = AssistantContext()
    if args.graph:
        nodes, edges = load_graph(args.graph)
        context = AssistantContext.from_graph(nodes, edges)
    return Assistant(Settings.from_env()).generate(args.message, context)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="process-rule-compiler",
        description="Compile natural language rules and process graphs into configuration documents"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging on stderr"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write a debug log to this file"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("parse", help="Parse rule text into a normalized rule")
    p.add_argument("text", help="Natural language rule")
    p.add_argument("--raw", action="store_true", help="Print extraction output without defaults")
    p.add_argument("--join-strategy", choices=JOIN_STRATEGIES, default=JOIN_STRATEGIES[0])
    p.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    p.set_defaults(func=cmd_parse)

    p = subparsers.add_parser("graph", help="Render rule text as editor nodes and edges")
    p.add_argument("text", help="Natural language rule")
    p.add_argument("--join-strategy", choices=JOIN_STRATEGIES, default=JOIN_STRATEGIES[0])
    p.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    p.set_defaults(func=cmd_graph)

    p = subparsers.add_parser("compile", help="Compile an editor graph JSON file")
    p.add_argument("graph", help="Path to {nodes, edges} JSON, or - for stdin")
    p.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    p.set_defaults(func=cmd_compile)

    p = subparsers.add_parser("layout", help="Lay out a process document as a station diagram")
    p.add_argument("process", help="Path to process JSON, or - for stdin")
    p.add_argument(
        "--default-action",
        action="store_true",
        help="Add the business-process-completed destination when the process has no action"
    )
    p.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    p.set_defaults(func=cmd_layout)

    p = subparsers.add_parser("ask", help="Ask the flow assistant a question")
    p.add_argument("message", help="Question for the assistant")
    p.add_argument("--graph", default=None, help="Optional {nodes, edges} JSON for context")
    p.set_defaults(func=cmd_ask)

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        result = args.func(args)
    except (OSError, json.JSONDecodeError, CompilerError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if isinstance(result, str):
        print(result)
    else:
        write_output(result, getattr(args, "output", None))


if __name__ == "__main__":
    main()
