"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the GenerationService. This is the boundary where exceptions are
turned into user-facing messages; every handler returns True on success.
The interactive shell routes typed commands to the same handlers so that
one pool lives for the whole session.
"""

import asyncio
import json
import logging
import shlex
from typing import List, Optional

from genpool.core.services.generation_service import GenerationService
from genpool.domain.errors import InvalidCredentialError
from genpool.domain.interfaces.user_interface import UserInterface
from genpool.domain.models.common import ProcessedOutput, PromptText
from genpool.domain.models.recovery import SHAPE_ARRAY, SHAPE_OBJECT, RecoveryFailure

logger = logging.getLogger(__name__)

SHELL_HELP = """Commands:
  add [--validate] SECRET [LABEL]   add a key (optionally probe it first)
  remove ID|LABEL                   remove a key
  rename ID|LABEL NEW_LABEL         change a key's nickname
  list | stats                      show keys and pool health
  test SECRET                       probe a key without adding it
  validate | cleanup                probe every key / drop suspended keys
  generate [--object|--array] PROMPT
  repair TEXT                       run the recovery cascade over TEXT
  exit | quit                       end the session"""

SHAPE_FLAGS = {"--object": SHAPE_OBJECT, "--array": SHAPE_ARRAY}

def _pretty(value) -> ProcessedOutput:
    return ProcessedOutput(json.dumps(value, indent=2, ensure_ascii=False))

class CommandHandler:
    """Handles incoming commands and delegates to the generation service."""

    def __init__(self, generation_service: GenerationService, ui: UserInterface):
        self.service = generation_service
        self.ui = ui

    # --- Key management ---

    async def handle_add_key(self, secret: str, label: Optional[str] = None, validate: bool = False) -> bool:
        logger.info(f"Handling 'keys add' (validate={validate})")
        try:
            credential_id = await self.service.register_credential(secret, label, validate=validate)
        except (InvalidCredentialError, ValueError) as e:
            self.ui.display_error(str(e))
            return False
        except Exception as e:
            logger.error(f"Failed to add API key: {e}", exc_info=True)
            self.ui.display_error(f"Failed to add API key: {e}")
            return False
        self.ui.display_info(
            f"API key added successfully: {credential_id} (working keys: {self.service.usable_count()})"
        )
        return True

    def handle_remove_key(self, credential_id: str) -> bool:
        if not self.service.remove_credential(credential_id):
            self.ui.display_error(f"API key not found: {credential_id}")
            return False
        self.ui.display_info(f"API key removed successfully (working keys: {self.service.usable_count()})")
        return True

    def handle_rename_key(self, credential_id: str, label: str) -> bool:
        if not self.service.rename_credential(credential_id, label):
            self.ui.display_error(f"API key not found: {credential_id}")
            return False
        self.ui.display_info(f"API key {credential_id} renamed to '{label}'")
        return True

    def handle_list_keys(self) -> bool:
        self.ui.display_credentials(self.service.list_credentials())
        self.ui.display_stats(self.service.get_stats())
        return True

    def handle_stats(self) -> bool:
        self.ui.display_stats(self.service.get_stats())
        return True

    async def handle_test_key(self, secret: str) -> bool:
        result = await self.service.test_credential(secret)
        if result.is_valid:
            self.ui.display_info("API key is valid.")
            return True
        self.ui.display_error(f"Invalid API key: {result.error}")
        return False

    async def handle_validate(self) -> bool:
        try:
            report = await self.service.validate_all()
        except Exception as e:
            logger.error(f"Failed to validate API keys: {e}", exc_info=True)
            self.ui.display_error(f"Failed to validate API keys: {e}")
            return False
        self.ui.display_info(
            f"Validated {report.tested} keys: {report.valid} valid, {report.invalid} invalid "
            f"(working keys: {self.service.usable_count()})"
        )
        return True

    def handle_cleanup(self) -> bool:
        removed = self.service.cleanup()
        self.ui.display_info(f"Removed {removed} expired/invalid API keys (working keys: {self.service.usable_count()})")
        return True

    # --- Generation ---

    async def handle_generate(self, prompt: str, shape: Optional[str] = None,
                              max_attempts: Optional[int] = None) -> bool:
        logger.info(f"Handling 'generate' command (shape={shape or 'any'})")
        try:
            outcome = await self.service.execute_and_recover(PromptText(prompt), shape, max_attempts)
        except Exception as e:
            logger.error(f"Generate command failed: {e}", exc_info=True)
            self.ui.display_error(f"Generation failed: {e}")
            return False

        if outcome.ok:
            self.ui.display_output(_pretty(outcome.value), title=f"Recovered ({outcome.strategy})", as_json=True)
            return True
        if outcome.failure is not None:
            self.ui.display_warning(outcome.failure.message)
            self.ui.display_output(ProcessedOutput(outcome.raw_text or ""), title="Raw response")
            return False
        self.ui.display_error(outcome.message)
        return False

    def handle_repair(self, text: str, shape: Optional[str] = None) -> bool:
        result = self.service.recovery.recover(text, shape)
        if isinstance(result, RecoveryFailure):
            self.ui.display_error(f"{result.message}\nPreview: {result.preview}")
            return False
        self.ui.display_output(_pretty(result.value), title=f"Recovered ({result.strategy})", as_json=True)
        return True

    # --- Interactive session ---

    def _resolve_id(self, reference: str) -> str:
        """Accepts a key id or a unique label and returns the key id."""
        views = list(self.service.list_credentials())
        if any(view.id == reference for view in views):
            return reference
        matches = [view.id for view in views if view.label == reference]
        return matches[0] if len(matches) == 1 else reference

    async def run_shell(self) -> bool:
        """Runs an interactive session over one long-lived key pool.

        Returns True when the session ended on 'exit'/'quit' or end of input.
        """
        self.ui.display_info(
            f"genpool shell: {self.service.usable_count()} working keys. "
            "Type 'help' for commands, 'exit' or 'quit' to end the session."
        )
        while True:
            try:
                line = await asyncio.to_thread(self.ui.get_prompt, "genpool> ")
            except (EOFError, KeyboardInterrupt):
                logger.debug("Input closed, ending shell session")
                break
            parts = line.strip().split(None, 1)
            if not parts:
                continue

            command = parts[0].lower()
            rest = parts[1] if len(parts) > 1 else ""
            if command in ("exit", "quit"):
                logger.debug(f"Handling exit command: {command}")
                break
            await self._dispatch(command, rest)

        self.ui.display_info("Ending shell session.")
        return True

    async def _dispatch(self, command: str, rest: str) -> bool:
        # Prompts and raw text keep their quotes; key commands are shell-split.
        if command == "generate" and rest:
            shape = None
            flag, _, prompt = rest.partition(" ")
            if flag in SHAPE_FLAGS:
                shape, rest = SHAPE_FLAGS[flag], prompt.strip()
            if rest:
                return await self.handle_generate(rest, shape)
        elif command == "repair" and rest:
            return self.handle_repair(rest)
        else:
            try:
                args = shlex.split(rest)
            except ValueError as e:
                self.ui.display_error(f"Could not parse command: {e}")
                return False
            handled = await self._dispatch_keys(command, args)
            if handled is not None:
                return handled

        self.ui.display_warning(f"Unknown or incomplete command: {command}. Type 'help' for commands.")
        return False

    async def _dispatch_keys(self, command: str, args: List[str]) -> Optional[bool]:
        """Runs a key-management command; None when the command is not recognised."""
        if command == "help" and not args:
            self.ui.display_info(SHELL_HELP)
            return True
        if command == "add" and args:
            validate = args[0] == "--validate"
            if validate:
                args = args[1:]
            if args:
                return await self.handle_add_key(args[0], " ".join(args[1:]) or None, validate=validate)
        elif command == "remove" and len(args) == 1:
            return self.handle_remove_key(self._resolve_id(args[0]))
        elif command == "rename" and len(args) >= 2:
            return self.handle_rename_key(self._resolve_id(args[0]), " ".join(args[1:]))
        elif command == "list" and not args:
            return self.handle_list_keys()
        elif command == "stats" and not args:
            return self.handle_stats()
        elif command == "test" and len(args) == 1:
            return await self.handle_test_key(args[0])
        elif command == "validate" and not args:
            return await self.handle_validate()
        elif command == "cleanup" and not args:
            return self.handle_cleanup()
        return None
