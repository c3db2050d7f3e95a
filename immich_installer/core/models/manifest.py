"""
Manifest document model — a line-preserving view of docker-compose.yml.

The compose file is parsed into top-level sections.  The ``services``
section is further split into one ``ServiceBlock`` per service; every
other line is carried through untouched, so rendering an unmodified
document gives back the exact input text.

Mutations (extension references, image suffixes, volumes) operate on
this model and the result is re-rendered, never patched with regexes
over the whole file.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

import yaml


class ManifestError(Exception):
    """Raised when a manifest is malformed or lacks an expected service."""


_TOP_KEY_RE = re.compile(r"^([A-Za-z0-9_.\-]+):(?:\s|$)")
_CHILD_KEY_RE = re.compile(r"^(\s+)([A-Za-z0-9_.\-]+):(?:\s|$)")
_ACTIVE_EXTENDS_RE = re.compile(r"^(\s*)extends:(.*)$")
_COMMENTED_EXTENDS_RE = re.compile(r"^\s*#\s*extends:")
_COMMENTED_ITEM_RE = re.compile(r"^\s*#\s*(file|service):(.*)$")
_ITEM_RE = re.compile(r"^\s*(file|service):(.*)$")
# key, optional quote, value, rest of line
_IMAGE_RE = re.compile(r"""^(\s*image:\s*)(["']?)([^"'\s]+)\2(.*)$""")
_CONTAINER_NAME_RE = re.compile(r"^\s*container_name:")


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


def _clean_value(raw: str) -> str:
    """Strip a trailing ``# comment`` and surrounding quotes from a scalar."""
    value = re.sub(r"\s+#.*$", "", raw).strip()
    if value.startswith("#"):
        return ""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return value


def _child_indent(lines: list[str]) -> str | None:
    """Indent of the first non-blank, non-comment line, or None."""
    for line in lines:
        if line.strip() and not _is_comment(line):
            return " " * _indent_of(line)
    return None


# ═══════════════════════════════════════════════════════════════════
#  Extension references
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ExtensionRef:
    """An ``extends:`` directive pointing at a fragment file service."""

    file: str
    service: str

    def render(self, indent: str) -> list[str]:
        return [
            f"{indent}extends:",
            f"{indent}  file: {self.file}",
            f"{indent}  service: {self.service}",
        ]


@dataclass
class _ExtensionSpan:
    start: int
    end: int            # exclusive
    ref: ExtensionRef
    active: bool


# ═══════════════════════════════════════════════════════════════════
#  Service blocks
# ═══════════════════════════════════════════════════════════════════


@dataclass
class ServiceBlock:
    """One service under ``services:`` — its key line plus ordered body lines."""

    name: str
    header: str
    body: list[str] = field(default_factory=list)

    def render(self) -> list[str]:
        return [self.header, *self.body]

    @property
    def child_indent(self) -> str:
        indent = _child_indent(self.body)
        if indent is None:
            indent = " " * (_indent_of(self.header) + 2)
        return indent

    # ── Extension references ────────────────────────────────────

    def _extension_spans(self) -> list[_ExtensionSpan]:
        spans: list[_ExtensionSpan] = []
        i = 0
        while i < len(self.body):
            line = self.body[i]
            m = _ACTIVE_EXTENDS_RE.match(line)
            if m and not _is_comment(line):
                base = len(m.group(1))
                inline = _clean_value(m.group(2))
                values = {"file": "", "service": inline}
                j = i + 1
                if not inline:
                    while (
                        j < len(self.body)
                        and self.body[j].strip()
                        and _indent_of(self.body[j]) > base
                    ):
                        item = _ITEM_RE.match(self.body[j])
                        if item:
                            values[item.group(1)] = _clean_value(item.group(2))
                        j += 1
                spans.append(_ExtensionSpan(
                    i, j, ExtensionRef(values["file"], values["service"]), True,
                ))
                i = j
                continue

            if _COMMENTED_EXTENDS_RE.match(line):
                values = {"file": "", "service": ""}
                j = i + 1
                while j < len(self.body) and j - i <= 2:
                    item = _COMMENTED_ITEM_RE.match(self.body[j])
                    if not item:
                        break
                    values[item.group(1)] = _clean_value(item.group(2))
                    j += 1
                spans.append(_ExtensionSpan(
                    i, j, ExtensionRef(values["file"], values["service"]), False,
                ))
                i = j
                continue
            i += 1
        return spans

    @property
    def extension(self) -> ExtensionRef | None:
        """The active (uncommented) extension reference, if any."""
        for span in self._extension_spans():
            if span.active:
                return span.ref
        return None

    @property
    def has_commented_extension(self) -> bool:
        return any(not s.active for s in self._extension_spans())

    def remove_extensions(self, *, include_commented: bool = False) -> bool:
        """Drop extension references from the block.  Returns True if any were removed."""
        spans = [
            s for s in self._extension_spans()
            if s.active or include_commented
        ]
        for span in reversed(spans):
            del self.body[span.start:span.end]
        return bool(spans)

    def set_extension(self, ref: ExtensionRef) -> None:
        """Replace every extension reference with exactly one active *ref*.

        The new reference goes right after ``container_name:``, or at the
        top of the block when there is no container name.
        """
        self.remove_extensions(include_commented=True)
        index = 0
        for i, line in enumerate(self.body):
            if _CONTAINER_NAME_RE.match(line):
                index = i + 1
                break
        self.body[index:index] = ref.render(self.child_indent)

    # ── Image tag ───────────────────────────────────────────────

    def _image_index(self) -> int | None:
        indent = self.child_indent
        for i, line in enumerate(self.body):
            if _IMAGE_RE.match(line) and " " * _indent_of(line) == indent:
                return i
        return None

    @property
    def image(self) -> str | None:
        idx = self._image_index()
        if idx is None:
            return None
        m = _IMAGE_RE.match(self.body[idx])
        assert m is not None
        return m.group(3)

    @image.setter
    def image(self, value: str) -> None:
        idx = self._image_index()
        if idx is None:
            raise ManifestError(f"Service '{self.name}' has no image line")
        m = _IMAGE_RE.match(self.body[idx])
        assert m is not None
        quote = m.group(2)
        self.body[idx] = f"{m.group(1)}{quote}{value}{quote}{m.group(4)}"

    def image_suffix(self, known: Iterable[str]) -> str | None:
        """Return which of the *known* suffixes the image tag carries."""
        image = self.image or ""
        for suffix in sorted(known, key=len, reverse=True):
            if image.endswith(f"-{suffix}"):
                return suffix
        return None

    def strip_image_suffix(self, known: Iterable[str]) -> bool:
        """Remove any known suffix from the image tag.  Returns True if changed."""
        suffix = self.image_suffix(known)
        if suffix is None:
            return False
        image = self.image or ""
        self.image = image[: -(len(suffix) + 1)]
        return True

    def set_image_suffix(self, suffix: str, known: Iterable[str]) -> bool:
        """Make the image tag end with exactly one ``-<suffix>``.

        Returns False when the tag already carried that suffix.
        """
        known = list(known)
        if self.image_suffix(known) == suffix:
            return False
        self.strip_image_suffix(known)
        self.image = f"{self.image}-{suffix}"
        return True

    # ── Commented lines ─────────────────────────────────────────

    def uncomment(self, prefixes: Iterable[str]) -> int:
        """Un-comment lines whose content starts with one of *prefixes*.

        The line keeps the indentation of its ``#``.  Returns the number
        of lines changed.
        """
        prefixes = tuple(prefixes)
        changed = 0
        for i, line in enumerate(self.body):
            if not _is_comment(line):
                continue
            content = line.lstrip()[1:].lstrip()
            if content.startswith(prefixes):
                self.body[i] = " " * _indent_of(line) + content
                changed += 1
        return changed


# ═══════════════════════════════════════════════════════════════════
#  Sections and the document
# ═══════════════════════════════════════════════════════════════════


@dataclass
class Section:
    """A top-level key and the lines nested under it."""

    name: str
    header: str
    body: list[str] = field(default_factory=list)

    def render(self) -> list[str]:
        return [self.header, *self.body]


@dataclass
class ServicesSection(Section):
    """The ``services:`` section; ``body`` holds lines before the first service."""

    blocks: dict[str, ServiceBlock] = field(default_factory=dict)

    def render(self) -> list[str]:
        out = [self.header, *self.body]
        for block in self.blocks.values():
            out.extend(block.render())
        return out

    @classmethod
    def from_section(cls, section: Section) -> "ServicesSection":
        result = cls(name=section.name, header=section.header)
        indent: int | None = None
        current: ServiceBlock | None = None
        for line in section.body:
            m = _CHILD_KEY_RE.match(line)
            if m and not _is_comment(line) and indent is None:
                indent = len(m.group(1))
            if m and not _is_comment(line) and len(m.group(1)) == indent:
                name = m.group(2)
                if name in result.blocks:
                    raise ManifestError(f"Duplicate service '{name}'")
                current = ServiceBlock(name=name, header=line)
                result.blocks[name] = current
            elif current is not None:
                current.body.append(line)
            else:
                result.body.append(line)
        return result


@dataclass
class ManifestDocument:
    """A compose file as ordered sections, renderable back to text."""

    preamble: list[str] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    trailing_newline: bool = True

    @classmethod
    def parse(cls, text: str) -> "ManifestDocument":
        """Parse compose text.  Raises ManifestError on duplicate keys."""
        doc = cls(trailing_newline=text.endswith("\n") or not text)
        lines = text.split("\n") if text else []
        if text.endswith("\n"):
            lines.pop()

        current: Section | None = None
        for line in lines:
            m = _TOP_KEY_RE.match(line)
            if m:
                name = m.group(1)
                if doc.section(name) is not None:
                    raise ManifestError(f"Duplicate top-level key '{name}'")
                current = Section(name=name, header=line)
                doc.sections.append(current)
            elif current is not None:
                current.body.append(line)
            else:
                doc.preamble.append(line)

        for i, section in enumerate(doc.sections):
            if section.name == "services":
                doc.sections[i] = ServicesSection.from_section(section)

        names = doc.volumes
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ManifestError(f"Duplicate volume names: {', '.join(dupes)}")
        return doc

    def render(self) -> str:
        lines = list(self.preamble)
        for section in self.sections:
            lines.extend(section.render())
        text = "\n".join(lines)
        if self.trailing_newline and lines:
            text += "\n"
        return text

    def section(self, name: str) -> Section | None:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    # ── Services ────────────────────────────────────────────────

    @property
    def services(self) -> dict[str, ServiceBlock]:
        section = self.section("services")
        if isinstance(section, ServicesSection):
            return section.blocks
        return {}

    def service(self, name: str) -> ServiceBlock:
        """Look up a service block by name.  Raises ManifestError if absent."""
        block = self.services.get(name)
        if block is None:
            raise ManifestError(f"Service '{name}' not found in manifest")
        return block

    # ── Volumes ─────────────────────────────────────────────────

    @property
    def volumes(self) -> list[str]:
        """Names declared under the top-level ``volumes:`` key, in order."""
        section = self.section("volumes")
        if section is None:
            return []
        indent = _child_indent(section.body)
        names = []
        for line in section.body:
            m = _CHILD_KEY_RE.match(line)
            if m and not _is_comment(line) and m.group(1) == indent:
                names.append(m.group(2))
        return names

    def add_volume(self, name: str) -> bool:
        """Declare a named volume.  Returns False if it already exists."""
        if name in self.volumes:
            return False

        section = self.section("volumes")
        if section is not None:
            indent = _child_indent(section.body) or "  "
            section.body.insert(0, f"{indent}{name}:")
            return True

        lines = list(self.preamble)
        for existing in self.sections:
            lines.extend(existing.render())
        if lines and lines[-1].strip():
            self._tail().append("")
        self.sections.append(Section(name="volumes", header="volumes:", body=[f"  {name}:"]))
        self.trailing_newline = True
        return True

    def _tail(self) -> list[str]:
        """The list that owns the document's last rendered line."""
        if not self.sections:
            return self.preamble
        last = self.sections[-1]
        if isinstance(last, ServicesSection) and last.blocks:
            return list(last.blocks.values())[-1].body
        return last.body

    # ── Validation ──────────────────────────────────────────────

    def validate(self) -> dict:
        """Check the rendered text still loads as a YAML mapping."""
        try:
            data = yaml.safe_load(self.render())
        except yaml.YAMLError as e:
            raise ManifestError(f"Manifest is not valid YAML: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a YAML mapping")
        return data
