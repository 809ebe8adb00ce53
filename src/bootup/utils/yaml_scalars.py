"""Read YAML scalars as the text written in the document."""

import yaml

_NULL_TAG = "tag:yaml.org,2002:null"


def scalar_text(document: str, *keys: str) -> str | None:
    """Source text of the scalar reached by following ``keys`` through mappings.

    ``yaml.safe_load`` types plain scalars: ``ref: 0123456`` becomes the
    octal int 42798 and ``version: 1.10`` the float 1.1. Git refs and
    version labels must keep their written form.

    Returns:
        The scalar's text, or None when a key is missing, the value is null
        or the path does not end in a scalar

    Raises:
        yaml.YAMLError: If ``document`` is not valid YAML
    """
    node = yaml.compose(document, Loader=yaml.SafeLoader)
    for key in keys:
        if not isinstance(node, yaml.MappingNode):
            return None
        found = None
        # Later duplicates win, as they do in safe_load.
        for key_node, value_node in node.value:
            if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
                found = value_node
        if found is None:
            return None
        node = found

    if not isinstance(node, yaml.ScalarNode) or node.tag == _NULL_TAG:
        return None
    return node.value
