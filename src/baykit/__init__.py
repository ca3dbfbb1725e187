"""baykit: idempotent svelte-bay setup for SvelteKit projects."""

__version__ = "0.1.0"
__author__ = "baykit Contributors"
__description__ = "Idempotent svelte-bay setup for SvelteKit projects"

from .analyzer import analyze
from .driver import converge, converge_file
from .models import AnalysisReport, ConvergenceOutcome, PluginOutcome, SetupTarget
from .plugin import analyze_config, inject_plugin

__all__ = [
    "AnalysisReport",
    "ConvergenceOutcome",
    "PluginOutcome",
    "SetupTarget",
    "analyze",
    "analyze_config",
    "converge",
    "converge_file",
    "inject_plugin",
]
