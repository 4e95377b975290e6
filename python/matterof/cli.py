"""Command-line interface for matterof.

    matterof get --key title notes/
    matterof set --key author.name --value "Jane Doe" post.md
    matterof query --key-regex '\\.draft$' --with-values docs/
    matterof remove --query '$.tags[*]' --dry-run post.md

Exit codes: 0 success, 1 nothing matched or validation failed, 2 error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

from .core.document import Document
from .core.key_path import KeyPath, ResolvedPath
from .core.normalized_path import parse_query_path
from .core.query import CombineMode, Condition, Query, QueryResult
from .core.value import FrontMatterValue, scalar_to_string, values_equal, yaml_to_json
from .errors import MatterOfError
from .io.codec import dump_yaml
from .io.files import FileFilter, resolve_files
from .io.reader import ReaderOptions, read_file
from .io.writer import DocumentWriter, OutputMode, WriteOptions

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_MATCH = 1
EXIT_ERROR = 2

Handler = Callable[[Path, Document, bool], bool]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def _file_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("files", nargs="+", type=Path, help="Files or directories to process")
    parent.add_argument("--max-depth", type=int, default=None, help="Maximum directory recursion depth")
    parent.add_argument("--include-hidden", action="store_true", help="Include hidden files and directories")
    parent.add_argument("--ext", action="append", default=None,
                        help="File extension to include (repeatable, default md and markdown)")
    parent.add_argument("--exclude", action="append", default=[], help="Glob pattern to exclude (repeatable)")
    parent.add_argument("--follow-links", action="store_true", help="Follow symbolic links")
    return parent


def _write_options() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--dry-run", action="store_true", help="Show a diff instead of writing")
    parent.add_argument("--backup-suffix", default=None, help="Back up modified files with this suffix")
    parent.add_argument("--backup-dir", type=Path, default=None, help="Directory for backup files")
    output = parent.add_mutually_exclusive_group()
    output.add_argument("--stdout", action="store_true", help="Write results to stdout")
    output.add_argument("--output-dir", type=Path, default=None, help="Write results into this directory")
    parent.add_argument("--no-atomic", action="store_true", help="Write files in place without a temp file")
    return parent


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="matterof", description="Query and edit YAML front matter")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (repeatable)")
    ap.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    sub = ap.add_subparsers(dest="command", required=True)
    files = _file_options()
    writes = _write_options()

    p = sub.add_parser("get", parents=[files], help="Print values")
    p.add_argument("-k", "--key", action="append", default=[], help="Key path to read (repeatable)")
    p.add_argument("--query", action="append", default=[], help="Query path such as '$.tags[*]'")
    p.add_argument("--all", action="store_true", help="Print the whole front matter")
    p.add_argument("--format", choices=["yaml", "json", "internal"], default="yaml")
    p.add_argument("--pretty", action="store_true", help="Indent JSON output")
    p.set_defaults(func=cmd_get)

    p = sub.add_parser("set", parents=[files, writes], help="Set values")
    p.add_argument("-k", "--key", action="append", default=[], help="Key path to set (repeatable)")
    p.add_argument("--value", action="append", default=[], help="Value for the matching --key")
    p.add_argument("--query", default=None, help="Set every location matching this query path")
    p.add_argument("--type", dest="value_type", default=None, help="Type of the values")
    p.set_defaults(func=cmd_set)

    p = sub.add_parser("add", parents=[files, writes], help="Add a value to an array")
    p.add_argument("-k", "--key", required=True, help="Key path of the array")
    p.add_argument("--value", required=True, help="Value to add")
    p.add_argument("--index", type=int, default=None, help="Insert position (default: append)")
    p.add_argument("--add-key", default=None, help="Add as this key when the target is a mapping")
    p.add_argument("--type", dest="value_type", default=None, help="Type of the value")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("remove", parents=[files, writes], help="Remove keys or values")
    p.add_argument("-k", "--key", action="append", default=[], help="Key path to remove (repeatable)")
    p.add_argument("--query", default=None, help="Remove every location matching this query path")
    p.add_argument("--all", action="store_true", help="Remove the whole front matter")
    p.add_argument("--value", default=None, help="Remove only array elements or values equal to this")
    p.add_argument("--range", dest="range_spec", default=None, help="Remove array positions START:END")
    p.add_argument("--cleanup-empty", action="store_true", help="Drop containers left empty")
    p.add_argument("--type", dest="value_type", default=None, help="Type of --value")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("replace", parents=[files, writes], help="Rename keys or replace values")
    p.add_argument("-k", "--key", default=None, help="Key path to replace")
    p.add_argument("--query", default=None, help="Query path selecting the locations")
    p.add_argument("--new-key", default=None, help="Rename the key")
    p.add_argument("--new-value", default=None, help="Replace the value")
    p.add_argument("--old-value", default=None, help="Only touch locations holding this value")
    p.add_argument("--type", dest="value_type", default=None, help="Type of the values")
    p.set_defaults(func=cmd_replace)

    p = sub.add_parser("query", parents=[files], help="Find locations matching conditions")
    p.add_argument("-k", "--key", action="append", default=[], help="Key path, matched hierarchically")
    p.add_argument("--exact", action="store_true", help="Match --key exactly instead of hierarchically")
    p.add_argument("--key-regex", default=None, help="Regex on the dotted key path")
    p.add_argument("--value", default=None, help="Exact scalar value")
    p.add_argument("--value-regex", default=None, help="Regex on the scalar value")
    p.add_argument("--type", dest="value_type", default=None, help="Value type")
    p.add_argument("--depth", type=int, default=None, help="Path depth")
    p.add_argument("--exists", action="store_true", help="Value is not null")
    p.add_argument("--missing", action="store_true", help="Value is null")
    p.add_argument("--any", action="store_true", help="Match any condition instead of all")
    out = p.add_mutually_exclusive_group()
    out.add_argument("--count", action="store_true", help="Print the number of matches per file")
    out.add_argument("--files-only", action="store_true", help="Print only the names of matching files")
    out.add_argument("--with-values", action="store_true", help="Print values with paths")
    p.set_defaults(func=cmd_query)

    p = sub.add_parser("init", parents=[files, writes], help="Add default front matter")
    p.add_argument("--default", action="append", default=[], metavar="KEY=VALUE", help="Default entry (repeatable)")
    p.add_argument("--only-missing", action="store_true", help="Only touch files without front matter")
    p.add_argument("--type", dest="value_type", default=None, help="Type of the default values")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("clean", parents=[files, writes], help="Remove null or empty entries")
    p.add_argument("--remove-null", action="store_true", help="Remove null values")
    p.add_argument("--remove-empty", action="store_true", help="Remove empty strings, arrays and mappings")
    p.set_defaults(func=cmd_clean)

    p = sub.add_parser("validate", parents=[files], help="Check front matter is well-formed")
    p.add_argument("--fail-fast", action="store_true", help="Stop at the first invalid file")
    p.add_argument("--format", choices=["human", "json", "simple"], default="human")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("format", parents=[files, writes], help="Rewrite front matter in canonical form")
    p.set_defaults(func=cmd_format)

    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    _configure_logging(args.verbose, args.quiet)
    try:
        return args.func(args)
    except MatterOfError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_get(args: argparse.Namespace) -> int:
    keys = [KeyPath.parse(k) for k in args.key]
    queries = [parse_query_path(q) for q in args.query]
    if not (keys or queries or args.all):
        raise _usage("get needs --key, --query or --all")

    def handle(path: Path, doc: Document, many: bool) -> bool:
        if args.all:
            if doc.front_matter is None:
                return False
            normalized: dict[str, Any] = {}
            if args.format == "internal":
                leaves = QueryResult(doc.flatten()).leaf_matches()
                normalized = {
                    match_path.to_normalized(): value.inner for match_path, value in leaves
                }
            _print_header(path, many)
            _print_value(doc.front_matter, args.format, args.pretty, normalized)
            return True
        matches: list[tuple[ResolvedPath, FrontMatterValue]] = []
        for key in keys:
            value = doc.get(key)
            if value is not None:
                matches.append((ResolvedPath(key.segments), value))
        for query in queries:
            matches.extend(doc.resolve(query))
        result = QueryResult(matches)
        if result.is_empty():
            return False
        _print_header(path, many)
        normalized = result.to_normalized() if args.format == "internal" else {}
        _print_value(result.to_value(), args.format, args.pretty, normalized)
        return True

    return _process(args, handle, require_match=True)


def cmd_set(args: argparse.Namespace) -> int:
    if args.query is not None:
        if len(args.value) != 1 or args.key:
            raise _usage("--query needs exactly one --value and no --key")
        pattern = parse_query_path(args.query)
        value = FrontMatterValue.parse(args.value[0], args.value_type)

        def handle_query(path: Path, doc: Document, many: bool) -> bool:
            if doc.set_matching(pattern, value):
                _save(args, path, doc)
            return True

        return _process(args, handle_query)

    if not args.key or len(args.key) != len(args.value):
        raise _usage("set needs matching --key and --value pairs")
    pairs = [
        (KeyPath.parse(k), FrontMatterValue.parse(v, args.value_type))
        for k, v in zip(args.key, args.value)
    ]

    def handle(path: Path, doc: Document, many: bool) -> bool:
        for key, value in pairs:
            doc.set(key, value)
        _save(args, path, doc)
        return True

    return _process(args, handle)


def cmd_add(args: argparse.Namespace) -> int:
    key = KeyPath.parse(args.key)
    value = FrontMatterValue.parse(args.value, args.value_type)

    def handle(path: Path, doc: Document, many: bool) -> bool:
        current = doc.get(key)
        if args.add_key is not None and current is not None and current.is_mapping():
            doc.set(key.child_key(args.add_key), value)
        else:
            doc.add_to_array(key, value, args.index)
        _save(args, path, doc)
        return True

    return _process(args, handle)


def cmd_remove(args: argparse.Namespace) -> int:
    keys = [KeyPath.parse(k) for k in args.key]
    pattern = parse_query_path(args.query) if args.query is not None else None
    if not (keys or pattern or args.all):
        raise _usage("remove needs --key, --query or --all")
    window = _parse_range(args.range_spec) if args.range_spec else None
    if window is not None and len(keys) != 1:
        raise _usage("--range needs exactly one --key")
    target = FrontMatterValue.parse(args.value, args.value_type) if args.value is not None else None

    def handle(path: Path, doc: Document, many: bool) -> bool:
        if args.all:
            doc.remove(KeyPath())
        elif window is not None:
            doc.remove_range(keys[0], *window)
        elif pattern is not None:
            doc.remove_matching(pattern, prune_empty=args.cleanup_empty)
        else:
            for key in keys:
                if target is None:
                    doc.remove(key)
                else:
                    _remove_value(doc, key, target)
        if args.cleanup_empty:
            doc.prune_empty_containers()
        _save(args, path, doc)
        return True

    return _process(args, handle)


def cmd_replace(args: argparse.Namespace) -> int:
    if (args.key is None) == (args.query is None):
        raise _usage("replace needs exactly one of --key or --query")
    if args.new_key is None and args.new_value is None:
        raise _usage("replace needs --new-key or --new-value")
    if args.key is not None:
        pattern: Query | KeyPath = Query.exact_key(KeyPath.parse(args.key))
    else:
        pattern = parse_query_path(args.query)
    options: dict[str, Any] = {"new_key": args.new_key}
    if args.new_value is not None:
        options["new_value"] = FrontMatterValue.parse(args.new_value, args.value_type)
    if args.old_value is not None:
        options["old_value"] = FrontMatterValue.parse(args.old_value, args.value_type)

    def handle(path: Path, doc: Document, many: bool) -> bool:
        if doc.replace(pattern, **options):
            _save(args, path, doc)
            return True
        return False

    return _process(args, handle)


def cmd_query(args: argparse.Namespace) -> int:
    query = _build_query(args)

    def handle(path: Path, doc: Document, many: bool) -> bool:
        result = doc.query(query)
        if args.count:
            print(f"{path}: {len(result)}" if many else len(result))
            return not result.is_empty()
        if result.is_empty():
            return False
        if args.files_only:
            print(path)
            return True
        prefix = f"{path}: " if many else ""
        for match_path, value in result:
            if args.with_values:
                print(f"{prefix}{match_path}: {_inline(value.inner)}")
            else:
                print(f"{prefix}{match_path}")
        return True

    return _process(args, handle, require_match=True)


def cmd_init(args: argparse.Namespace) -> int:
    defaults = []
    for entry in args.default:
        key, sep, raw = entry.partition("=")
        if not sep or not key.strip():
            raise _usage(f"--default expects KEY=VALUE, got {entry!r}")
        defaults.append((KeyPath.parse(key), FrontMatterValue.parse(raw, args.value_type)))

    def handle(path: Path, doc: Document, many: bool) -> bool:
        if args.only_missing and doc.has_front_matter():
            logger.info("skipping %s: front matter present", path)
            return True
        for key, value in defaults:
            if not doc.contains(key):
                doc.set(key, value)
        _save(args, path, doc)
        return True

    return _process(args, handle)


def cmd_clean(args: argparse.Namespace) -> int:
    def handle(path: Path, doc: Document, many: bool) -> bool:
        if args.remove_null:
            doc.remove_nulls()
        if args.remove_empty:
            doc.remove_matching(Query.value_exact("").and_type("string"))
            doc.prune_empty_containers()
        doc.clean_empty_front_matter()
        _save(args, path, doc)
        return True

    return _process(args, handle)


def cmd_validate(args: argparse.Namespace) -> int:
    files = resolve_files(args.files, _file_filter(args))
    report: list[dict[str, Any]] = []
    for path in files:
        error = None
        try:
            read_file(path, ReaderOptions()).validate()
        except MatterOfError as exc:
            error = str(exc)
        report.append({"file": str(path), "valid": error is None, "error": error})
        if error is not None and args.fail_fast:
            break

    if args.format == "json":
        print(json.dumps(report, indent=2))
    else:
        for entry in report:
            if args.format == "simple":
                print(f"{entry['file']}: {'OK' if entry['valid'] else 'ERROR'}")
            elif entry["valid"]:
                print(f"ok      {entry['file']}")
            else:
                print(f"invalid {entry['file']}: {entry['error']}")
    return EXIT_OK if all(entry["valid"] for entry in report) else EXIT_NO_MATCH


def cmd_format(args: argparse.Namespace) -> int:
    def handle(path: Path, doc: Document, many: bool) -> bool:
        _save(args, path, doc)
        return True

    return _process(args, handle)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _usage(message: str) -> MatterOfError:
    return MatterOfError(message)


def _file_filter(args: argparse.Namespace) -> FileFilter:
    file_filter = FileFilter(
        max_depth=args.max_depth,
        include_hidden=args.include_hidden,
        exclude=list(args.exclude),
        follow_links=args.follow_links,
    )
    if args.ext:
        file_filter.extensions = list(args.ext)
    return file_filter


def _write_options_from(args: argparse.Namespace) -> WriteOptions:
    options = WriteOptions(
        dry_run=args.dry_run,
        backup_suffix=args.backup_suffix,
        backup_dir=args.backup_dir,
        atomic=not args.no_atomic,
    )
    if args.stdout:
        options.output = OutputMode.STDOUT
    elif args.output_dir is not None:
        options.output = OutputMode.DIRECTORY
        options.output_path = args.output_dir
    return options


def _save(args: argparse.Namespace, path: Path, doc: Document) -> None:
    result = DocumentWriter(_write_options_from(args)).write(doc, path)
    if result.diff:
        print(result.diff, end="")
    elif result.modified and result.output_path is not None:
        logger.info("updated %s", result.output_path)


def _process(args: argparse.Namespace, handler: Handler, require_match: bool = False) -> int:
    files = resolve_files(args.files, _file_filter(args))
    many = len(files) > 1
    matched = False
    failed = False
    for path in files:
        try:
            doc = read_file(path, ReaderOptions())
            if handler(path, doc, many):
                matched = True
        except MatterOfError as exc:
            message = str(exc)
            if not message.startswith(str(path)):
                message = f"{path}: {message}"
            print(f"error: {message}", file=sys.stderr)
            failed = True
    if failed:
        return EXIT_ERROR
    if require_match and not matched:
        return EXIT_NO_MATCH
    return EXIT_OK


def _build_query(args: argparse.Namespace) -> Query:
    conditions: list[Condition] = []
    if args.key:
        if args.exact:
            conditions.append(Condition.exact_key(*[parse_query_path(k) for k in args.key]))
        else:
            conditions.append(Condition.key(*[parse_query_path(k) for k in args.key]))
    if args.key_regex is not None:
        conditions.append(Condition.key_regex(args.key_regex))
    if args.value is not None:
        conditions.append(Condition.value_exact(args.value))
    if args.value_regex is not None:
        conditions.append(Condition.value_regex(args.value_regex))
    if args.value_type is not None:
        conditions.append(Condition.value_type(args.value_type))
    if args.depth is not None:
        conditions.append(Condition.at_depth(args.depth))
    if args.exists:
        conditions.append(Condition.exists())
    if args.missing:
        conditions.append(Condition.missing())
    return Query(conditions, CombineMode.ANY if args.any else CombineMode.ALL)


def _parse_range(text: str) -> tuple[int, int]:
    start, sep, end = text.partition(":")
    try:
        if not sep:
            raise ValueError(text)
        return int(start), int(end)
    except ValueError:
        raise _usage(f"--range expects START:END, got {text!r}") from None


def _remove_value(doc: Document, key: KeyPath, target: FrontMatterValue) -> None:
    current = doc.get(key)
    if current is None:
        return
    items = current.as_sequence()
    if items is None:
        if current == target or current.to_display_string() == target.to_display_string():
            doc.remove(key)
        return
    kept = [
        item.inner for item in items
        if not values_equal(item.inner, target.inner)
        and item.to_display_string() != target.to_display_string()
    ]
    doc.set(key, kept)


def _print_header(path: Path, many: bool) -> None:
    if many:
        print(f"==> {path} <==")


def _print_value(value: Any, fmt: str, pretty: bool, normalized: dict[str, Any]) -> None:
    if fmt == "json":
        print(json.dumps(yaml_to_json(value), indent=2 if pretty else None, ensure_ascii=False))
    elif fmt == "internal":
        for path, item in normalized.items():
            print(f"{path}: {_inline(item)}")
    elif isinstance(value, (dict, list)):
        print(dump_yaml(value), end="")
    else:
        print(_inline(value))


def _inline(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(yaml_to_json(value), ensure_ascii=False)
    if value is None:
        return "null"
    return scalar_to_string(value)


if __name__ == "__main__":
    sys.exit(main())
