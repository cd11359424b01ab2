"""mathsyntax language server: pygls-based LSP for notation files.

Publishes syntax diagnostics and document symbols via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from mathsyntax import __version__
from mathsyntax.errors import ParseError
from mathsyntax.source import Range, line_col
from mathsyntax.syntax import parse_source
from mathsyntax.tokens import MetaKind, MetaToken

# Top-level rules shown as document symbols.
_SYMBOL_KINDS = {
    "use": lsp.SymbolKind.Namespace,
    "module": lsp.SymbolKind.Module,
    "member": lsp.SymbolKind.Field,
    "fn": lsp.SymbolKind.Function,
}


# ── Conversion helpers ────────────────────────────────────────────


def _position(source: str, offset: int) -> lsp.Position:
    line, col = line_col(source, offset)
    return lsp.Position(line=line - 1, character=col - 1)


def range_to_lsp(source: str, rng: Range) -> lsp.Range:
    """Convert a character range to a 0-indexed LSP range."""
    return lsp.Range(
        start=_position(source, rng.offset),
        end=_position(source, rng.next_offset),
    )


def error_to_diagnostic(source: str, error: ParseError) -> lsp.Diagnostic:
    rng = error.range
    if rng.is_empty() and rng.offset < len(source):
        rng = Range(rng.offset, 1)
    return lsp.Diagnostic(
        range=range_to_lsp(source, rng),
        severity=lsp.DiagnosticSeverity.Error,
        source="mathsyntax",
        code=error.code,
        message=f"[{error.code}] {error.message()}",
    )


def document_symbols(source: str, tokens: list[MetaToken]) -> list[lsp.DocumentSymbol]:
    """Build symbols for top-level declarations from the token log."""
    symbols: list[lsp.DocumentSymbol] = []
    depth = 0
    start: MetaToken | None = None
    names: list[str] = []
    for token in tokens:
        if token.kind == MetaKind.START_NODE:
            if depth == 0:
                start = token
                names = []
            depth += 1
        elif token.kind == MetaKind.END_NODE:
            depth -= 1
            if depth == 0 and start is not None:
                symbol = _node_symbol(source, start, names)
                if symbol is not None:
                    symbols.append(symbol)
                start = None
        elif start is not None and token.kind == MetaKind.STRING and token.name == "name":
            names.append(str(token.value))
    return symbols


def _node_symbol(
    source: str, start: MetaToken, names: list[str],
) -> lsp.DocumentSymbol | None:
    kind = _SYMBOL_KINDS.get(start.name)
    if kind is None:
        return None
    if start.name == "use":
        name = "::".join(names)
    else:
        name = names[0] if names else ""
    rng = range_to_lsp(source, start.range)
    return lsp.DocumentSymbol(
        name=name or "<anonymous>",
        kind=kind,
        range=rng,
        selection_range=rng,
        detail=start.name,
    )


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    tokens: list[MetaToken] = field(default_factory=list)
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "mathsyntax-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _analyze(uri: str, source: str) -> DocumentState:
    """Parse the document, cache the results and return them."""
    outcome = parse_source(source)
    ds = DocumentState(source=source, tokens=outcome.tokens)
    error = outcome.failure
    if error is not None:
        ds.diagnostics = [error_to_diagnostic(source, error)]
    _state[uri] = ds
    return ds


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ds = _analyze(uri, params.text_document.text)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: the last change holds the whole document
    source = params.content_changes[-1].text if params.content_changes else ""
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return []
    return document_symbols(ds.source, ds.tokens)


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the language server on stdio."""
    server.start_io()
