#!/usr/bin/env python3

"""
GridAgg Input Tree Utilities

This module turns the three GridAgg input documents (data, hierarchy and commands) into a generic attribute/child tree that the rest of the engine consumes. The ConfigNode class is the only structure the hierarchy builder and the command interpreter ever see, so markup details stay out of the core. Documents can be written either as XML, read with the standard library ElementTree parser, or as YAML mappings of the form {tag, attrs, children}, read with PyYAML's safe loader. Attribute values are always kept as strings, exactly as they would appear in XML, and callers convert them when they need numbers or flags. Any failure to read or parse a document is fatal for the run and is raised as InputTreeError.

Classes:
    ConfigNode: Element of a parsed input tree with a tag, string attributes and ordered children.

Functions:
    load_tree: Load an XML or YAML document from disk into a ConfigNode tree.
    parse_xml_string: Parse XML text into a ConfigNode tree.
    tree_from_mapping: Convert nested dictionaries into a ConfigNode tree.

Version: 1.0.0
"""

import yaml
import xml.etree.ElementTree as ET
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .constants import SUPPORTED_TREE_SUFFIXES
from .exceptions import InputTreeError, OperandError


@dataclass
class ConfigNode:
    """
    One element of a parsed input tree. Children keep document order, which the interpreter relies on to execute commands in sequence.
    """

    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    children: List['ConfigNode'] = field(default_factory=list)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    def child(self, tag: str) -> Optional['ConfigNode']:
        """Return the first child with the given tag, or None."""
        for node in self.children:
            if node.tag == tag:
                return node
        return None

    def children_named(self, tag: str) -> List['ConfigNode']:
        return [node for node in self.children if node.tag == tag]

    def require_attr(self, name: str) -> str:
        """
        Return an attribute value or raise OperandError naming the element and attribute.

        Parameters:
            name (str): Attribute name.

        Returns:
            str: Attribute value.
        """
        value = self.attrs.get(name)
        if value is None:
            raise OperandError(f"<{self.tag}> is missing attribute '{name}'", self.tag)
        return value

    def require_child(self, tag: str) -> 'ConfigNode':
        node = self.child(tag)
        if node is None:
            raise OperandError(f"<{self.tag}> is missing child <{tag}>", self.tag)
        return node

    def child_attr(self, tag: str, name: str) -> str:
        """Shorthand for require_child(tag).require_attr(name)."""
        return self.require_child(tag).require_attr(name)

    def __iter__(self):
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _from_element(element: ET.Element) -> ConfigNode:
    return ConfigNode(
        tag=element.tag,
        attrs={key: value.strip() for key, value in element.attrib.items()},
        children=[_from_element(child) for child in element]
    )


def parse_xml_string(text: str) -> ConfigNode:
    """
    Parse XML text into a ConfigNode tree rooted at the document element.

    Parameters:
        text (str): XML document text.

    Returns:
        ConfigNode: Root node of the parsed tree.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as err:
        raise InputTreeError(f"Malformed XML document: {err}") from err
    return _from_element(root)


def tree_from_mapping(mapping: Dict[str, Any]) -> ConfigNode:
    """
    Convert a nested mapping of the form {tag, attrs, children} into a ConfigNode tree. Attribute values are converted to strings so YAML numbers and booleans behave like their XML spellings.

    Parameters:
        mapping (Dict[str, Any]): Mapping with a required 'tag' key and optional 'attrs' and 'children' keys.

    Returns:
        ConfigNode: Root node of the converted tree.
    """
    if not isinstance(mapping, dict) or 'tag' not in mapping:
        raise InputTreeError(f"Tree node must be a mapping with a 'tag' key, got {mapping!r}")

    attrs = mapping.get('attrs') or {}
    children = mapping.get('children') or []

    if not isinstance(attrs, dict):
        raise InputTreeError(f"Attributes of <{mapping['tag']}> must be a mapping")
    if not isinstance(children, list):
        raise InputTreeError(f"Children of <{mapping['tag']}> must be a list")

    return ConfigNode(
        tag=str(mapping['tag']),
        attrs={str(key): _stringify(value) for key, value in attrs.items()},
        children=[tree_from_mapping(child) for child in children]
    )


def load_tree(path: Union[str, Path]) -> ConfigNode:
    """
    Load an input document from disk. The suffix selects the reader: .xml files go through ElementTree and .yaml/.yml files through yaml.safe_load.

    Parameters:
        path (Union[str, Path]): Path to the document.

    Returns:
        ConfigNode: Root node of the document tree.
    """
    path = Path(path)

    if path.suffix.lower() not in SUPPORTED_TREE_SUFFIXES:
        raise InputTreeError(
            f"Unsupported document type '{path.suffix}' for {path}; "
            f"expected one of {', '.join(SUPPORTED_TREE_SUFFIXES)}"
        )

    try:
        text = path.read_text()
    except OSError as err:
        raise InputTreeError(f"Cannot read {path}: {err}") from err

    if path.suffix.lower() == ".xml":
        return parse_xml_string(text)

    try:
        mapping = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise InputTreeError(f"Malformed YAML document {path}: {err}") from err

    return tree_from_mapping(mapping)
