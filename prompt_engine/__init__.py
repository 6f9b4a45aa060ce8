"""prompt-engine: versioned prompt resolution and template rendering.

The ``prompt`` subpackage holds the engine itself (version selection,
resolution, caching manager and template renderer); ``core`` holds
configuration and logging setup shared by all components.
"""

__version__ = "0.1.0"

from .prompt import (  # noqa: E402
    PromptExecutionContext,
    PromptManager,
    VersionSpec,
    render_template,
)

__all__ = [
    "__version__",
    "PromptExecutionContext",
    "PromptManager",
    "VersionSpec",
    "render_template",
]
