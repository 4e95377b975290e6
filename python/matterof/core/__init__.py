"""matterof.core -- value tree, path languages, query, resolver, mutator, document."""

from .document import Document
from .key_path import WILDCARD, Index, KeyPath, Property, Regex, ResolvedPath
from .normalized_path import APPEND, NormalizedPath, parse_normalized_path, parse_query_path
from .query import CombineMode, Condition, ConditionKind, Query, QueryResult
from .resolver import MISSING, Resolver
from .value import (
    FrontMatterValue,
    ValueKind,
    ValueType,
    json_to_yaml,
    kind_of,
    merge_values,
    scalar_to_string,
    values_equal,
    yaml_to_json,
)

__all__ = [
    "Document",
    "KeyPath",
    "ResolvedPath",
    "Property",
    "Index",
    "Regex",
    "WILDCARD",
    "NormalizedPath",
    "APPEND",
    "parse_normalized_path",
    "parse_query_path",
    "Query",
    "QueryResult",
    "Condition",
    "ConditionKind",
    "CombineMode",
    "Resolver",
    "MISSING",
    "FrontMatterValue",
    "ValueKind",
    "ValueType",
    "kind_of",
    "values_equal",
    "scalar_to_string",
    "merge_values",
    "yaml_to_json",
    "json_to_yaml",
]
