"""YAML dialect used for front matter.

PyYAML's safe loader is tuned in two ways so that editing a file does not
change values nobody touched:

* timestamps are not resolved implicitly, so ``date: 2024-01-01`` stays a
  string and is dumped back unquoted;
* explicitly tagged nodes (``!custom``, ``!!binary``, ``!!set`` ...) are
  unwrapped to their inner scalar, sequence or mapping.
"""

from __future__ import annotations

from typing import Any

import yaml

from ..errors import ConversionError

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"
_UNWRAPPED_TAGS = (
    _TIMESTAMP_TAG,
    "tag:yaml.org,2002:binary",
    "tag:yaml.org,2002:set",
    "tag:yaml.org,2002:omap",
    "tag:yaml.org,2002:pairs",
)


def _without_timestamps(resolvers: dict) -> dict:
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != _TIMESTAMP_TAG]
        for first, entries in resolvers.items()
    }


class FrontMatterLoader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as text and drops tags."""


class FrontMatterDumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


FrontMatterLoader.yaml_implicit_resolvers = _without_timestamps(
    yaml.SafeLoader.yaml_implicit_resolvers
)
FrontMatterDumper.yaml_implicit_resolvers = _without_timestamps(
    yaml.SafeDumper.yaml_implicit_resolvers
)


def _construct_untagged(loader: FrontMatterLoader, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_mapping(node, deep=True)


def _construct_local_tag(loader: FrontMatterLoader, tag_suffix: str, node: yaml.Node) -> Any:
    return _construct_untagged(loader, node)


for _tag in _UNWRAPPED_TAGS:
    FrontMatterLoader.add_constructor(_tag, _construct_untagged)
FrontMatterLoader.add_multi_constructor("!", _construct_local_tag)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_yaml(text: str) -> Any:
    """Parse YAML text into a plain value tree.

    Raises ConversionError when the text is not valid YAML or nests too
    deeply for the parser.
    """
    try:
        return yaml.load(text, Loader=FrontMatterLoader)
    except yaml.YAMLError as exc:
        raise ConversionError(f"invalid YAML: {exc}") from exc
    except RecursionError as exc:
        raise ConversionError("invalid YAML: nesting is too deep to parse") from exc


def dump_yaml(data: Any) -> str:
    """Serialize a value tree as block-style YAML, keeping key order."""
    try:
        return yaml.dump(
            data,
            Dumper=FrontMatterDumper,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
    except yaml.YAMLError as exc:
        raise ConversionError(f"cannot serialize value: {exc}") from exc
    except RecursionError as exc:
        raise ConversionError("cannot serialize value: nesting is too deep") from exc
