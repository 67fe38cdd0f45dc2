"""
Logger construction for deploy tasks.

Every task logs through a FormattedLogger so that lines emitted while
deploying to several clusters or namespaces can be told apart.
"""

import logging
from typing import Any, MutableMapping, Optional, Tuple

from rich.logging import RichHandler

from kubeship.output import Verbosity, get_output

LOGGER_NAME = "kubeship"


class FormattedLogger(logging.LoggerAdapter):
    """
    Logger adapter that prefixes each message with the deploy target.

    Messages read "[context][namespace] message". Either part is omitted
    when it is empty.
    """

    def __init__(self, logger: logging.Logger, namespace: Optional[str], context: Optional[str]):
        super().__init__(logger, {"namespace": namespace, "context": context})
        self.namespace = namespace
        self.context = context

    @property
    def prefix(self) -> str:
        parts = [p for p in (self.context, self.namespace) if p]
        return "".join(f"[{p}]" for p in parts)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            msg = f"{self.prefix} {msg}"
        return msg, kwargs

    @classmethod
    def build(
        cls,
        namespace: Optional[str] = None,
        context: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "FormattedLogger":
        """
        Build the default task logger bound to a namespace/context pair.

        Args:
            namespace: Target namespace, or None for global deploys
            context: Target cluster context
            logger: Underlying logger (defaults to the "kubeship.task" logger)

        Returns:
            FormattedLogger wrapping the underlying logger
        """
        return cls(logger or logging.getLogger(f"{LOGGER_NAME}.task"), namespace, context)


def configure_logging(verbosity: Verbosity = Verbosity.NORMAL) -> None:
    """
    Route kubeship log records to the Rich error console.

    Called once by the CLI. Library users keep whatever logging setup they
    already have.
    """
    level = {
        Verbosity.QUIET: logging.ERROR,
        Verbosity.NORMAL: logging.WARNING,
        Verbosity.VERBOSE: logging.DEBUG,
    }[verbosity]

    root = logging.getLogger(LOGGER_NAME)
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(console=get_output().error_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
