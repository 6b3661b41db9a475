"""
Cypherpunk Remailer Directory Loading

Builds RemailerDirectory instances from files:
- rlist.txt: the statistics page published by remailer pingers
- TOML: a hand-maintained list of [[remailer]] tables

Fetching statistics over the network is left to the caller; these
functions only parse text that is already available.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Union

import toml

from ..errors import DirectoryError
from .directory import Capability, RemailerDirectory, RemailerRecord


logger = logging.getLogger(__name__)

# $remailer{"dizum"} = "<remailer@dizum.com> cpunk max mix pgp latent hash";
REMAILER_LINE = re.compile(
    r'^\$remailer\{"(?P<name>[\w.-]+)"\}\s*=\s*"<(?P<address>[^>\s]+)>(?P<options>[^"]*)";'
)

# dizum     remailer@dizum.com    ++++++++++++   1:23:45  99.99%
STATS_LINE = re.compile(
    r'^(?P<name>[\w.-]+)\s+(?P<address>[^\s@]+@[\w.-]+)\s+[*?+\-#._ ]*?\s*'
    r'(?P<latency>(?:\d+:)?\d{1,2}:\d{2})\s+(?P<uptime>\d{1,3}(?:\.\d{1,2})?)%'
)

LAST_UPDATE_LINE = re.compile(r'^Last update:\s*(?P<date>.+?)\s*$')

LATENCY = re.compile(r'^((?P<hour>\d+):)?(?P<minute>[0-5]?\d):(?P<second>[0-5]\d)$')

# Option word marking a middleman (no final delivery)
MIDDLEMAN_OPTION = "middle"
# Option word marking Type-I (Cypherpunk) support
CPUNK_OPTION = "cpunk"

CAPABILITY_NAMES = {
    "middle": Capability.MIDDLE,
    "middle-hop": Capability.MIDDLE,
    "final": Capability.FINAL,
    "final-delivery": Capability.FINAL,
}

HEX_KEY_PREFIX = "hex:"


def parse_latency(text: str) -> int:
    """
    Convert a "[h:]m:ss" latency to seconds.

    Raises:
        ValueError: If the text is not a latency
    """
    match = LATENCY.match(text.strip())
    if not match:
        raise ValueError(f"Not a latency: {text!r}")
    hours = int(match.group("hour") or 0)
    return hours * 3600 + int(match.group("minute")) * 60 + int(match.group("second"))


def capabilities_from_options(options: Iterable[str]) -> FrozenSet[Capability]:
    """Every remailer relays; only non-middlemen deliver."""
    if MIDDLEMAN_OPTION in options:
        return frozenset({Capability.MIDDLE})
    return frozenset({Capability.MIDDLE, Capability.FINAL})


def parse_rlist(text: str) -> List[RemailerRecord]:
    """
    Parse an rlist.txt statistics page.

    Remailers come from the $remailer{...} lines; the statistics table
    adds latency and uptime. Remailers without the "cpunk" option cannot
    carry Type-I messages and are skipped, as are entries whose address
    is not ASCII.

    Args:
        text: Page contents

    Returns:
        Records in order of first appearance
    """
    entries: Dict[str, Dict[str, Any]] = {}
    stats: Dict[str, Dict[str, Any]] = {}

    for line in text.splitlines():
        line = line.strip()

        match = REMAILER_LINE.match(line)
        if match:
            name = match.group("name")
            entries[name] = {
                "address": match.group("address"),
                "options": tuple(match.group("options").split()),
            }
            continue

        match = LAST_UPDATE_LINE.match(line)
        if match:
            logger.info(f"Remailer statistics last updated {match.group('date')}")
            continue

        match = STATS_LINE.match(line)
        if match:
            name = match.group("name")
            try:
                latency = parse_latency(match.group("latency"))
            except ValueError as e:
                logger.warning(f"Bad latency for remailer {name}: {e}")
                latency = 0
            stats[name] = {
                "latency": latency,
                "uptime": float(match.group("uptime")),
            }

    records = []
    for name, entry in entries.items():
        options = entry["options"]
        if CPUNK_OPTION not in options:
            logger.debug(f"Skipping {name}: no Type-I support")
            continue
        if not entry["address"].isascii():
            logger.warning(f"Skipping {name}: non-ASCII address {entry['address']!r}")
            continue
        extra = stats.get(name, {})
        records.append(RemailerRecord(
            name=name,
            address=entry["address"],
            public_key=entry["address"],
            capabilities=capabilities_from_options(options),
            options=options,
            latency=extra.get("latency", 0),
            uptime=extra.get("uptime", 100.0),
        ))

    for name in stats.keys() - entries.keys():
        logger.debug(f"Statistics for {name} without a $remailer entry, ignored")

    return records


def _parse_key(value: Any) -> Union[str, bytes]:
    if not isinstance(value, str) or not value:
        raise DirectoryError(f"Invalid key value: {value!r}")
    if value.startswith(HEX_KEY_PREFIX):
        try:
            return bytes.fromhex(value[len(HEX_KEY_PREFIX):])
        except ValueError as e:
            raise DirectoryError(f"Invalid hex key: {e}")
    return value


def _record_from_table(table: Dict[str, Any]) -> RemailerRecord:
    """Build a record from one [[remailer]] TOML table."""
    try:
        name = str(table["name"])
        address = str(table["address"])
    except KeyError as e:
        raise DirectoryError(f"Remailer entry missing field {e}")
    if not address.isascii():
        raise DirectoryError(f"Remailer {name!r} has a non-ASCII address: {address!r}")

    options = tuple(str(o) for o in table.get("options", ()))

    if "capabilities" in table:
        try:
            capabilities = frozenset(
                CAPABILITY_NAMES[str(c).lower()] for c in table["capabilities"]
            )
        except KeyError as e:
            raise DirectoryError(f"Unknown capability {e} for remailer {name!r}")
    else:
        capabilities = capabilities_from_options(options)

    latency = table.get("latency", 0)
    if isinstance(latency, str):
        try:
            latency = parse_latency(latency)
        except ValueError as e:
            raise DirectoryError(f"Remailer {name!r}: {e}")

    return RemailerRecord(
        name=name,
        address=address,
        public_key=_parse_key(table.get("key", address)),
        capabilities=capabilities,
        options=options,
        latency=int(latency),
        uptime=float(table.get("uptime", 100.0)),
    )


def parse_toml_directory(text: str) -> List[RemailerRecord]:
    """Parse a TOML document with [[remailer]] tables."""
    try:
        data = toml.loads(text)
    except toml.TomlDecodeError as e:
        raise DirectoryError(f"Invalid directory file: {e}")
    return [_record_from_table(table) for table in data.get("remailer", [])]


def load_directory(path: Path) -> RemailerDirectory:
    """
    Load a remailer directory from disk.

    Files ending in .txt are parsed as rlist statistics, anything else
    as TOML.

    Raises:
        DirectoryError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DirectoryError(f"Cannot read remailer directory {path}: {e}")

    if path.suffix == ".txt":
        records = parse_rlist(text)
    else:
        records = parse_toml_directory(text)

    directory = RemailerDirectory(records)
    logger.info(f"Loaded {len(directory)} remailer(s) from {path}")
    return directory
