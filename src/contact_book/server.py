"""
Contact book MCP server.

FastMCP server exposing one `contacts` tool over a contacts file.
Tool calls are serialized with a lock around the registry and the sync
staging file.
"""

import logging
import threading
from datetime import date
from pathlib import Path
from typing import Literal, Optional, Union

from fastmcp import FastMCP

from contact_book.contacts.errors import (
    AuthError,
    AuthErrorKind,
    ContactBookError,
    TransportError,
)
from contact_book.contacts.registry import ContactRegistry
from contact_book.contacts.storage import load_registry, save_registry
from contact_book.sync.gateway import SyncGateway


logger = logging.getLogger(__name__)


INSTRUCTIONS = """Contact book backed by a flat text file.

FIELDS: 'Имя' (first_name), 'Фамилия' (second_name), 'Телефон' (phone),
'Email' (email), 'Дата рождения' (date_of_birth). Either form is accepted.

FORMATS:
- names: capital letter followed by lowercase letters
- phone: +7 followed by 10 digits
- birth date: dd.mm (e.g. 15.06), empty value resets to unknown

Changes stay in memory until action="save"."""


REQUIRED_PARAMS = {
    "edit": ("id", "field"),
    "remove": ("id",),
    "set_birthday": ("id",),
    "search": ("field",),
    "filter": ("field",),
    "sort": ("field",),
}


def _no_interactive_code(auth_url: str) -> str:
    raise AuthError(
        AuthErrorKind.NOT_AUTHENTICATED,
        "No stored Drive token. Run 'contact-book auth' first.",
    )


class ContactsService:
    """Registry bound to its file, safe for concurrent tool calls."""

    def __init__(self, path: Path, gateway: Optional[SyncGateway] = None):
        self.path = Path(path)
        self.registry: ContactRegistry = load_registry(self.path)
        self.gateway = gateway
        self._lock = threading.Lock()

    def _gateway(self) -> SyncGateway:
        if self.gateway is None:
            self.gateway = SyncGateway()
        if not self.gateway.is_authenticated:
            self.gateway.authenticate(_no_interactive_code)
        return self.gateway

    def handle(self, action: str, params: dict) -> dict:
        """Run one tool action. Failures are returned as error dicts."""
        missing = [name for name in REQUIRED_PARAMS.get(action, ()) if params.get(name) is None]
        if missing:
            return {"error": "missing_parameter", "message": f"Required: {', '.join(missing)}"}

        with self._lock:
            try:
                return self._execute(action, params)
            except ValueError as e:
                return {"error": "invalid_parameter", "message": str(e)}
            except (AuthError, TransportError) as e:
                logger.warning(f"Sync action '{action}' failed: {e}")
                return e.to_dict()

    def _execute(self, action: str, p: dict) -> dict:
        registry = self.registry

        if action == "list":
            return {"contacts": [c.to_dict() for c in registry], "total": len(registry)}

        elif action == "add":
            return registry.add(
                p.get("first_name") or "", p.get("second_name") or "",
                p.get("phone") or "", p.get("email") or "",
            ).to_dict()

        elif action == "edit":
            return registry.edit(p["id"], p["field"], p.get("value")).to_dict()

        elif action == "remove":
            result = registry.remove(p["id"])
            if isinstance(result, ContactBookError):
                return result.to_dict()
            return {"deleted": True, "id": result.id}

        elif action == "set_birthday":
            return registry.set_date_of_birth(p["id"], p.get("value")).to_dict()

        elif action == "search":
            return registry.search(p["field"], p.get("query") or "").to_dict()

        elif action == "filter":
            return registry.filter(p["field"], p.get("query") or "").to_dict()

        elif action == "sort":
            contacts = registry.sort(p["field"])
            return {"contacts": [c.to_dict() for c in contacts], "total": len(contacts)}

        elif action == "upcoming_birthdays":
            today = date.fromisoformat(p["today"]) if p.get("today") else None
            return registry.upcoming_birthdays(today).to_dict()

        elif action == "name_breakdown":
            return {
                "names": [
                    {"name": name, "percent": percent}
                    for name, percent in registry.name_breakdown()
                ]
            }

        elif action == "save":
            save_registry(registry, self.path)
            return {"saved": True, "path": str(self.path), "total": len(registry)}

        elif action == "upload":
            count = self._gateway().push(registry)
            return {"uploaded": count}

        elif action == "download":
            count = self._gateway().pull(registry)
            if count is None:
                return {"error": "not_found", "message": "Remote contacts file not found"}
            return {"downloaded": count}

        return {"error": "unknown_action", "message": f"Unknown action: {action}"}


def create_server(path: Union[str, Path], gateway: Optional[SyncGateway] = None) -> FastMCP:
    """Build a FastMCP server bound to the contacts file at path."""
    service = ContactsService(Path(path), gateway=gateway)

    mcp = FastMCP(name="contact-book", instructions=INSTRUCTIONS)

    def contacts(
        action: Literal[
            "list", "add", "edit", "remove", "set_birthday",
            "search", "filter", "sort", "upcoming_birthdays",
            "name_breakdown", "save", "upload", "download",
        ] = "list",
        id: Optional[int] = None,
        first_name: Optional[str] = None,
        second_name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        field: Optional[str] = None,
        value: Optional[str] = None,
        query: Optional[str] = None,
        today: Optional[str] = None,
    ) -> dict:
        """
        Unified tool for the contact book.

        Args:
            action: Action to perform:
                - 'list': All contacts in insertion order (default)
                - 'add': New contact (first_name, second_name, phone, email)
                - 'edit': Change one field (id, field, value)
                - 'remove': Delete contact (id); its id is reused later
                - 'set_birthday': Set birth date (id, value 'dd.mm' or empty)
                - 'search': Substring search over Имя/Фамилия/Телефон (field, query)
                - 'filter': Like search, also Email/Дата рождения (field, query)
                - 'sort': Sorted contacts (field); unknown birth dates last
                - 'upcoming_birthdays': Birthdays this Monday-Sunday week (today: 'YYYY-MM-DD', optional)
                - 'name_breakdown': Top 10 first names with percentages
                - 'save': Write contacts back to the file
                - 'upload': Replace the Drive copy with the current contacts
                - 'download': Replace the current contacts with the Drive copy

        Returns:
            Contact dicts with id, first_name, second_name, phone, email,
            date_of_birth. Failures come back as {"error": kind, "message": ...}.
        """
        return service.handle(action, {
            "id": id, "first_name": first_name, "second_name": second_name,
            "phone": phone, "email": email, "field": field, "value": value,
            "query": query, "today": today,
        })

    mcp.tool()(contacts)
    return mcp


def serve(path: Union[str, Path]) -> None:
    """Run MCP server over stdio."""
    create_server(path).run()
