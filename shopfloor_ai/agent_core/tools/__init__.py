"""Tool contracts, the tool registry and the built-in shop tools.

 A *tool* is a named, schema-validated, single-responsibility operation.

 - Planners request tools by name through ``ToolRegistry.invoke``.
 - The registry validates input, runs the tool with a ``ToolContext`` that
   scopes it to the run's shop and user, then validates output.
 - Tool bodies report domain failures with ``ToolFailure``.

 This package exports:

 - ``Tool``: protocol for tool implementations.
 - ``ToolContext``: per-run tenant/user scoping.
 - ``ToolRegistry``: name -> tool mapping and the dispatch primitive.
 - ``Mailer`` / ``SendGridMailer``: e-mail delivery used by ``email_invoice``.
 """

from .base import Tool, ToolContext
from .mailer import MailDeliveryError, Mailer, SendGridMailer
from .registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "Mailer",
    "MailDeliveryError",
    "SendGridMailer",
]
