"""
Distinguished name helpers.

Paths are split with ldap3's DN parser so escaped separators inside values
(e.g. 'CN=Doe\\, Jane') are not mistaken for RDN boundaries.
"""

from typing import List, Optional

from ldap3.utils.dn import parse_dn

HEX_DIGITS = set("0123456789abcdefABCDEF")


def split_rdns(path: str) -> List[str]:
    """Split a DN into its RDNs, innermost first."""
    rdns = []
    current = []
    for attribute_type, attribute_value, separator in parse_dn(path, strip=True):
        current.append(f"{attribute_type}={attribute_value}")
        # multi-valued RDNs are joined with '+'
        if separator != "+":
            rdns.append("+".join(current))
            current = []
    if current:
        rdns.append("+".join(current))
    return rdns


def leaf_rdn(path: str) -> str:
    return split_rdns(path)[0]


def rdn_type(rdn: str) -> str:
    return rdn.split("=", 1)[0].strip()


def leaf_value(path: str) -> str:
    """Unescaped value of the innermost RDN, e.g. 'Sales' for 'OU=Sales,DC=corp'."""
    attribute_type, attribute_value, _ = parse_dn(path, strip=True)[0]
    return unescape_value(attribute_value)


def unescape_value(value: str) -> str:
    """Undo RFC 4514 escaping ('\\,' and '\\2C' both become ',')."""
    if "\\" not in value:
        return value

    chars = []
    index = 0
    while index < len(value):
        char = value[index]
        if char == "\\" and index + 1 < len(value):
            pair = value[index + 1:index + 3]
            if len(pair) == 2 and all(c in HEX_DIGITS for c in pair):
                chars.append(chr(int(pair, 16)))
                index += 3
                continue
            chars.append(value[index + 1])
            index += 2
            continue
        chars.append(char)
        index += 1
    return "".join(chars)


def parent_path(path: str) -> Optional[str]:
    rdns = split_rdns(path)
    if len(rdns) < 2:
        return None
    return ",".join(rdns[1:])


def join_path(rdn: str, parent: str) -> str:
    return f"{rdn},{parent}"


def is_within(path: str, root: str) -> bool:
    """True when path equals root or lies anywhere below it."""
    path_rdns = _normalized(path)
    root_rdns = _normalized(root)
    if len(path_rdns) < len(root_rdns):
        return False
    return path_rdns[len(path_rdns) - len(root_rdns):] == root_rdns


def normalize_path(path: str) -> str:
    """Case-folded DN suitable as a dictionary key."""
    return ",".join(_normalized(path))


def ancestor_segments(path: str) -> List[str]:
    """
    Every prefix path of a DN, outermost first and ending with path itself.

    'OU=A,OU=B,DC=corp' -> ['DC=corp', 'OU=B,DC=corp', 'OU=A,OU=B,DC=corp']
    """
    rdns = split_rdns(path)
    return [",".join(rdns[index:]) for index in range(len(rdns) - 1, -1, -1)]


def _normalized(path: str) -> List[str]:
    return [rdn.casefold() for rdn in split_rdns(path)]
