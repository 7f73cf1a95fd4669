"""Package builder that writes a dacpac-style zip archive."""

import hashlib
import re
import uuid
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .. import __version__
from ..base.builder import BasePackageBuilder, PackageMetadata
from ..config import TargetDialect
from ..exceptions import BuildError

DAC_NAMESPACE = "http://schemas.microsoft.com/sqlserver/dac/Serialization/2012/02"
CONTENT_TYPES_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/content-types"

BATCH_SEPARATOR = re.compile(r"^\s*GO\s*;?\s*$", re.IGNORECASE | re.MULTILINE)

_NAME = r"((?:\[[^\]]*(?:\]\][^\]]*)*\]|\"[^\"]*\"|[\w@#$]+)(?:\s*\.\s*(?:\[[^\]]*(?:\]\][^\]]*)*\]|\"[^\"]*\"|[\w@#$]+))*)"

# The earliest match in a batch names the element.
ELEMENT_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("SqlTable", re.compile(rf"\bCREATE\s+TABLE\s+{_NAME}", re.IGNORECASE)),
    ("SqlView", re.compile(rf"\bCREATE\s+(?:OR\s+ALTER\s+)?VIEW\s+{_NAME}", re.IGNORECASE)),
    ("SqlProcedure", re.compile(rf"\bCREATE\s+(?:OR\s+ALTER\s+)?PROC(?:EDURE)?\s+{_NAME}", re.IGNORECASE)),
    ("SqlPartitionFunction", re.compile(rf"\bCREATE\s+PARTITION\s+FUNCTION\s+{_NAME}", re.IGNORECASE)),
    ("SqlPartitionScheme", re.compile(rf"\bCREATE\s+PARTITION\s+SCHEME\s+{_NAME}", re.IGNORECASE)),
    ("SqlScalarFunction", re.compile(rf"\bCREATE\s+(?:OR\s+ALTER\s+)?FUNCTION\s+{_NAME}", re.IGNORECASE)),
    ("SqlSchema", re.compile(rf"\bCREATE\s+SCHEMA\s+{_NAME}", re.IGNORECASE)),
    ("SqlUser", re.compile(rf"\bCREATE\s+USER\s+{_NAME}", re.IGNORECASE)),
    ("SqlIndex", re.compile(rf"\bCREATE\s+(?:UNIQUE\s+)?(?:(?:NON)?CLUSTERED\s+)?(?:COLUMNSTORE\s+)?INDEX\s+{_NAME}", re.IGNORECASE)),
    ("SqlStatistic", re.compile(rf"\bCREATE\s+STATISTICS\s+{_NAME}", re.IGNORECASE)),
    ("SqlConstraint", re.compile(rf"\bALTER\s+TABLE\s+.*?\bADD\s+CONSTRAINT\s+{_NAME}", re.IGNORECASE | re.DOTALL)),
    ("SqlFilegroup", re.compile(rf"\bALTER\s+DATABASE\s+.*?\bADD\s+FILEGROUP\s+{_NAME}", re.IGNORECASE | re.DOTALL)),
]

INLINE_TVF = re.compile(r"\bRETURNS\s+TABLE\b", re.IGNORECASE)
MULTI_STATEMENT_TVF = re.compile(r"\bRETURNS\s+@\w+\s+TABLE\b", re.IGNORECASE)

# Anything outside the XML 1.0 Char production, which escaping cannot fix.
INVALID_XML_CHAR = re.compile(r"[^\t\n\r\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


@dataclass
class Batch:
    """One GO-delimited piece of a parse unit."""

    unit: int
    index: int
    text: str
    element_type: str = "SqlScript"
    element_name: Optional[str] = None


def split_batches(script: str) -> list[str]:
    """Split a script on GO separator lines, dropping empty batches."""
    return [batch.strip("\r\n") for batch in BATCH_SEPARATOR.split(script) if batch.strip()]


def find_framing_errors(sql: str) -> list[str]:
    """Lex a batch for unterminated literals, identifiers, comments and parentheses."""
    errors = []
    depth = 0
    comment_depth = 0
    i = 0
    length = len(sql)

    while i < length:
        char = sql[i]
        pair = sql[i:i + 2]

        if comment_depth:
            if pair == "/*":
                comment_depth += 1
                i += 2
            elif pair == "*/":
                comment_depth -= 1
                i += 2
            else:
                i += 1
            continue

        if pair == "--":
            newline = sql.find("\n", i)
            i = length if newline == -1 else newline + 1
        elif pair == "/*":
            comment_depth = 1
            i += 2
        elif char in ("'", '"', "["):
            closing = "]" if char == "[" else char
            end = i + 1
            while True:
                end = sql.find(closing, end)
                if end == -1:
                    break
                if sql[end + 1:end + 2] == closing:
                    end += 2
                    continue
                break
            if end == -1:
                kind = "string literal" if char == "'" else "quoted identifier"
                errors.append(f"unterminated {kind} starting at offset {i}")
                return errors
            i = end + 1
        else:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth < 0:
                    errors.append(f"unexpected ')' at offset {i}")
                    return errors
            i += 1

    if comment_depth:
        errors.append("unterminated block comment")
    if depth > 0:
        errors.append(f"{depth} unclosed '('")
    return errors


def find_invalid_characters(sql: str) -> list[str]:
    """Report the first character the package model's XML cannot hold."""
    match = INVALID_XML_CHAR.search(sql)
    if match is None:
        return []
    return [
        f"character U+{ord(match.group()):04X} at offset {match.start()} "
        f"is not allowed in the package model"
    ]


def classify_batch(batch: Batch) -> Batch:
    earliest = None
    for element_type, pattern in ELEMENT_PATTERNS:
        match = pattern.search(batch.text)
        if match and (earliest is None or match.start() < earliest[1].start()):
            earliest = (element_type, match)

    if earliest is not None:
        batch.element_type = earliest[0]
        batch.element_name = earliest[1].group(1)

    if batch.element_type == "SqlScalarFunction":
        if MULTI_STATEMENT_TVF.search(batch.text):
            batch.element_type = "SqlMultiStatementTableValuedFunction"
        elif INLINE_TVF.search(batch.text):
            batch.element_type = "SqlInlineTableValuedFunction"
    return batch


class DacpacBuilder(BasePackageBuilder):
    """Builds a zip package holding the model, metadata and origin parts."""

    def __init__(self, dialect: TargetDialect):
        super().__init__(dialect)
        self.batches: list[Batch] = []
        self.errors: list[str] = []
        self._units = 0

    def add_objects(self, script: str) -> None:
        """Add one parse unit; framing and character errors are kept until build()."""
        self._units += 1
        for index, text in enumerate(split_batches(script), start=1):
            for error in find_framing_errors(text) + find_invalid_characters(text):
                self.errors.append(f"Parse unit {self._units}, batch {index}: {error}")
            self.batches.append(classify_batch(Batch(unit=self._units, index=index, text=text)))
        self.logger.debug(f"Parse unit {self._units}: {len(self.batches)} batches in model")

    def build(self, path: Path, metadata: PackageMetadata) -> Path:
        if self.errors:
            raise BuildError(
                f"{len(self.errors)} error(s) while compiling the model:\n"
                + "\n".join(f"  {error}" for error in self.errors)
            )

        model_xml = self._model_xml()
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(path, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr("model.xml", model_xml)
                archive.writestr("DacMetadata.xml", self._metadata_xml(metadata))
                archive.writestr("Origin.xml", self._origin_xml(model_xml))
                archive.writestr("[Content_Types].xml", self._content_types_xml())
        except OSError as e:
            raise BuildError(f"Unable to write package {path}: {e}") from e

        self.logger.info(f"Built {path} with {len(self.batches)} model elements")
        return path

    def _model_xml(self) -> bytes:
        root = ET.Element(
            "DataSchemaModel",
            {
                "xmlns": DAC_NAMESPACE,
                "FileFormatVersion": "1.2",
                "SchemaVersion": "2.9",
                "DspName": self.dialect.schema_provider,
                "CollationLcid": "1033",
                "CollationCaseSensitive": "False",
            },
        )
        header = ET.SubElement(root, "Header")
        for option in ("AnsiNulls", "QuotedIdentifier"):
            custom = ET.SubElement(header, "CustomData", {"Category": option})
            ET.SubElement(custom, "Metadata", {"Name": option, "Value": "True"})

        model = ET.SubElement(root, "Model")
        for batch in self.batches:
            attributes = {"Type": batch.element_type}
            if batch.element_name:
                attributes["Name"] = batch.element_name
            element = ET.SubElement(model, "Element", attributes)
            prop = ET.SubElement(element, "Property", {"Name": "Script"})
            ET.SubElement(prop, "Value").text = batch.text
            ET.SubElement(
                element,
                "Annotation",
                {"Type": "SourceLocation", "Unit": str(batch.unit), "Batch": str(batch.index)},
            )
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _metadata_xml(self, metadata: PackageMetadata) -> bytes:
        root = ET.Element("DacType", {"xmlns": DAC_NAMESPACE})
        ET.SubElement(root, "Name").text = metadata.name
        ET.SubElement(root, "Version").text = metadata.version
        ET.SubElement(root, "Description").text = metadata.description
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _origin_xml(self, model_xml: bytes) -> bytes:
        now = datetime.now(timezone.utc).isoformat()
        root = ET.Element("DacOrigin", {"xmlns": DAC_NAMESPACE})
        properties = ET.SubElement(root, "PackageProperties")
        ET.SubElement(properties, "Version").text = "3.1.0.0"
        ET.SubElement(properties, "ContainsExportedData").text = "false"

        operation = ET.SubElement(root, "Operation")
        ET.SubElement(operation, "Identity").text = str(uuid.uuid4())
        ET.SubElement(operation, "Start").text = now
        ET.SubElement(operation, "End").text = now
        ET.SubElement(operation, "ProductName").text = "schema-packager"
        ET.SubElement(operation, "ProductVersion").text = __version__
        ET.SubElement(operation, "TargetDialect").text = self.dialect.name

        checksums = ET.SubElement(root, "Checksums")
        ET.SubElement(checksums, "Checksum", {"Uri": "/model.xml"}).text = (
            hashlib.sha256(model_xml).hexdigest().upper()
        )
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _content_types_xml(self) -> bytes:
        root = ET.Element("Types", {"xmlns": CONTENT_TYPES_NAMESPACE})
        ET.SubElement(root, "Default", {"Extension": "xml", "ContentType": "text/xml"})
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)
