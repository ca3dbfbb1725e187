"""Core data models for the baykit setup engine."""

from __future__ import annotations

import hashlib
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*$")


def fingerprint(document: str) -> str:
    """Return a short digest identifying one version of a document."""
    digest = hashlib.sha1(document.encode("utf-8")).hexdigest()[:16]
    return f"{len(document)}:{digest}"


class Span(BaseModel):
    """A half-open ``[start, end)`` character range within a document."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0, description="First character offset")
    end: int = Field(..., ge=0, description="Offset one past the last character")

    @model_validator(mode="after")
    def validate_order(self) -> Span:
        """Reject inverted ranges."""
        if self.end < self.start:
            msg = f"Span end {self.end} precedes start {self.start}"
            raise ValueError(msg)
        return self

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, text: str) -> str:
        """Return the text covered by this span."""
        return text[self.start:self.end]


class SetupTarget(BaseModel):
    """What the setup engine injects and where it looks for it."""

    model_config = ConfigDict(frozen=True)

    package: str = Field(default="svelte-bay", description="Package imported by the layout")
    symbol: str = Field(default="createBay", description="Zero-argument initializer")
    plugin_module: str = Field(
        default="svelte-bay/vite",
        description="Module path exporting the build plugin factory",
    )
    plugin_factory: str = Field(default="svelteBay", description="Plugin factory name")
    plugin_field: str = Field(default="plugins", description="List field holding plugins")

    @field_validator("symbol", "plugin_factory", "plugin_field")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Validate names are plain JavaScript identifiers."""
        if not IDENTIFIER_PATTERN.match(v):
            msg = f"'{v}' is not a valid JavaScript identifier"
            raise ValueError(msg)
        return v

    @field_validator("package", "plugin_module")
    @classmethod
    def validate_specifier(cls, v: str) -> str:
        """Validate module specifiers cannot break out of a quoted string."""
        if not v or any(ch in v for ch in "'\"`\n"):
            msg = f"'{v}' is not a valid module specifier"
            raise ValueError(msg)
        return v

    @property
    def import_statement(self) -> str:
        return f"import {{ {self.symbol} }} from '{self.package}';"

    @property
    def call_statement(self) -> str:
        return f"{self.symbol}();"

    @property
    def plugin_import_statement(self) -> str:
        return f"import {{ {self.plugin_factory} }} from '{self.plugin_module}';"

    @property
    def plugin_call(self) -> str:
        return f"{self.plugin_factory}()"


class AnalysisReport(BaseModel):
    """Structural facts about one version of a component file.

    Offsets are absolute positions in the analyzed document and are only
    meaningful for that exact text; ``fingerprint`` identifies it.
    """

    model_config = ConfigDict(frozen=True)

    fingerprint: str = Field(..., description="Identity of the analyzed document")
    has_primary_block: bool = False
    has_secondary_block: bool = False
    primary_block_range: Span | None = None
    primary_content_range: Span | None = None
    secondary_block_range: Span | None = None
    block_lang: str | None = Field(
        default=None,
        description="lang attribute of the existing script blocks, if any",
    )
    has_target_import: bool = False
    import_range: Span | None = None
    import_quote: str = "'"
    imported_symbols: tuple[str, ...] = ()
    has_target_symbol_imported: bool = False
    init_call_name: str | None = Field(
        default=None,
        description="Local name the initializer is bound to when imported under an alias",
    )
    has_init_call: bool = False
    indent: str = "\t"
    newline: str = "\n"

    @property
    def is_satisfied(self) -> bool:
        """Whether the block, the import and the call are all in place."""
        return (
            self.has_primary_block
            and self.has_target_symbol_imported
            and self.has_init_call
        )

    def matches(self, document: str) -> bool:
        """Check this report was derived from ``document``."""
        return self.fingerprint == fingerprint(document)


class Operation(str, Enum):
    """Named edits the convergence driver can choose."""

    CREATE_PRIMARY_BLOCK = "create_primary_block"
    INSERT_PRIMARY_BLOCK_BEFORE_CONTENT = "insert_primary_block_before_content"
    INSERT_PRIMARY_BLOCK_AFTER_SECONDARY = "insert_primary_block_after_secondary"
    MERGE_SYMBOL_INTO_IMPORT = "merge_symbol_into_import"
    INSERT_FRESH_IMPORT = "insert_fresh_import"
    APPEND_INIT_CALL = "append_init_call"


class MutationStep(BaseModel):
    """One operation bound to the offsets of a specific report."""

    model_config = ConfigDict(frozen=True)

    operation: Operation
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    text: str


class MutationPlan(BaseModel):
    """Operations predicted from a single report, in application order."""

    model_config = ConfigDict(frozen=True)

    operations: tuple[Operation, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.operations


class ConvergenceOutcome(str, Enum):
    """Terminal states of a convergence run."""

    ALREADY_SATISFIED = "already_satisfied"
    SATISFIED = "satisfied"
    CANCELLED = "cancelled"


class ConvergenceResult(BaseModel):
    """Outcome of bringing one component file to the initialized state."""

    outcome: ConvergenceOutcome
    original: str
    document: str
    steps: list[MutationStep] = Field(default_factory=list)
    final_report: AnalysisReport

    @property
    def changed(self) -> bool:
        return self.document != self.original

    @property
    def operations(self) -> list[Operation]:
        return [step.operation for step in self.steps]


class PluginReport(BaseModel):
    """Structural facts about one version of a build-config file."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    has_plugin_import: bool = False
    module_import_range: Span | None = None
    module_import_quote: str = "'"
    module_imported_symbols: tuple[str, ...] = ()
    factory_name: str | None = Field(
        default=None,
        description="Local name the factory is bound to when imported under an alias",
    )
    import_insert_offset: int = 0
    has_list: bool = False
    list_content_range: Span | None = None
    has_invocation: bool = False
    newline: str = "\n"

    @property
    def is_configured(self) -> bool:
        return self.has_plugin_import and self.has_invocation

    def matches(self, document: str) -> bool:
        return self.fingerprint == fingerprint(document)


class PluginOutcome(str, Enum):
    """Terminal states of a plugin injection."""

    ALREADY_CONFIGURED = "already_configured"
    CONFIGURED = "configured"
    PARTIAL = "partial"  # import added, plugin list not found


class PluginResult(BaseModel):
    """Outcome of registering the build plugin."""

    outcome: PluginOutcome
    original: str
    document: str
    added_import: bool = False
    added_invocation: bool = False
    final_report: PluginReport

    @property
    def changed(self) -> bool:
        return self.document != self.original
