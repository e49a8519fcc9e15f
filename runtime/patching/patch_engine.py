"""
Patch Engine

Parses an AI patch, validates each operation against the live GraphModel and
applies the whole batch inside one transaction. The first failing operation
aborts the batch and rolls every earlier change back, so a patch is either
fully applied or not applied at all.

States: Idle -> Parsing -> Validating <-> Applying -> Committed | RolledBack
"""
from typing import Optional
from enum import Enum
import logging

from core.config import PilotSettings
from core.graph.registry import GraphModel
from core.graph.transaction import TransactionScope, UndoHistory
from core.patch.errors import PatchErrorCode
from core.patch.parser import parse_patch
from core.patch.schema import OperationResult, PatchOperation, PatchOutcome
from core.patch.validator import OperationValidator
from .handlers import HANDLERS
from .notifications import NotificationSink

logger = logging.getLogger(__name__)


class PatchEngineState(str, Enum):
    IDLE = "Idle"
    PARSING = "Parsing"
    VALIDATING = "Validating"
    APPLYING = "Applying"
    COMMITTED = "Committed"
    ROLLED_BACK = "RolledBack"


class PatchEngine:
    """
    Applies JSON patches to blueprints

    Usage:
        engine = PatchEngine(graph_model, EditorNotificationSink())
        if engine.apply_patch(patch_json):
            ...
        else:
            print(engine.get_last_error())

    One call runs at a time per engine. A call made while another is still
    running (for example from a notification callback) fails with
    EngineBusy and leaves the running call untouched.
    """

    def __init__(self, graph_model: GraphModel, notification_sink: Optional[NotificationSink] = None,
                 settings: Optional[PilotSettings] = None, history: Optional[UndoHistory] = None):
        """
        Initialize the engine

        Args:
            graph_model: Blueprints the engine reads and mutates
            notification_sink: Receives success/failure reports (default: ignored)
            settings: Transaction label and undo depth (default: PilotSettings())
            history: Undo history shared with the editor (default: a new one)
        """
        self.graph_model = graph_model
        self.notification_sink = notification_sink or NotificationSink()
        self.settings = settings or PilotSettings()
        self.history = history or UndoHistory(graph_model, max_entries=self.settings.undo_depth)
        self.transaction = TransactionScope(graph_model, self.history)
        self.validator = OperationValidator(graph_model)

        self.state = PatchEngineState.IDLE
        self.last_outcome: Optional[PatchOutcome] = None
        self._last_error = ""
        self._last_error_code: Optional[PatchErrorCode] = None
        self._busy = False

    # =========================================================================
    # Public API
    # =========================================================================

    def apply_patch(self, patch_text: str) -> bool:
        """Apply a patch; True only if every operation was applied and committed"""
        return self.apply(patch_text).success

    def apply(self, patch_text: str) -> PatchOutcome:
        """
        Apply a patch and return the structured outcome

        Args:
            patch_text: Patch JSON

        Returns:
            PatchOutcome
        """
        if self._busy:
            return self._busy_outcome()

        self._busy = True
        try:
            outcome = self._apply(patch_text)
        finally:
            self._busy = False

        self.last_outcome = outcome
        return outcome

    def can_apply_patch(self, patch_text: str) -> bool:
        """
        Dry run: parse and validate every operation without mutating anything

        Operations are checked against the current state, not against the
        state earlier operations of the same patch would produce.
        """
        if self._busy:
            return False

        self._busy = True
        try:
            self._clear_error()
            self.state = PatchEngineState.PARSING
            parsed = parse_patch(patch_text)
            if parsed.is_empty:
                self._set_error(PatchErrorCode.EMPTY_PATCH, parsed.error_message)
                return False

            self.state = PatchEngineState.VALIDATING
            result = self.validator.validate_all(parsed.operations)
            if not result.success:
                self._set_error(result.error_code, result.message)
                return False
            return True
        finally:
            self.state = PatchEngineState.IDLE
            self._busy = False

    def get_last_error(self) -> str:
        return self._last_error

    @property
    def last_error_code(self) -> Optional[PatchErrorCode]:
        return self._last_error_code

    @property
    def is_busy(self) -> bool:
        return self._busy

    # =========================================================================
    # State machine
    # =========================================================================

    def _apply(self, patch_text: str) -> PatchOutcome:
        self._clear_error()

        self.state = PatchEngineState.PARSING
        parsed = parse_patch(patch_text)
        if parsed.is_empty:
            self._set_error(PatchErrorCode.EMPTY_PATCH, parsed.error_message)
            self.state = PatchEngineState.ROLLED_BACK
            return PatchOutcome(
                success=False,
                error_code=PatchErrorCode.EMPTY_PATCH,
                error_message=self._last_error,
                metadata=parsed.metadata
            )

        operations = parsed.operations
        if parsed.metadata:
            logger.debug(f"Patch metadata: {parsed.metadata}")

        self.transaction.begin(self.settings.transaction_label)
        applied = 0
        failure: Optional[OperationResult] = None

        try:
            for operation in operations:
                result = self._run_operation(operation)
                if not result.success:
                    failure = result
                    logger.error(f"Failed to apply patch operation {operation.describe()}")
                    break
                applied += 1
        except BaseException:
            # Unexpected errors still leave the graph untouched
            self.transaction.rollback()
            self.state = PatchEngineState.ROLLED_BACK
            raise

        if failure is not None:
            self.transaction.rollback()
            self.state = PatchEngineState.ROLLED_BACK
            self._set_error(failure.error_code, failure.message)
            self.notification_sink.report_failure(patch_text, self._last_error)
            return PatchOutcome(
                success=False,
                operations_applied=applied,
                operation_count=len(operations),
                error_code=failure.error_code,
                error_message=self._last_error,
                metadata=parsed.metadata
            )

        self.transaction.commit()
        self.state = PatchEngineState.COMMITTED
        logger.info(f"Successfully applied patch with {len(operations)} operations")
        self.notification_sink.report_success(len(operations))
        return PatchOutcome(
            success=True,
            operations_applied=applied,
            operation_count=len(operations),
            metadata=parsed.metadata
        )

    def _run_operation(self, operation: PatchOperation) -> OperationResult:
        self.state = PatchEngineState.VALIDATING
        result = self.validator.validate(operation)

        if result.success:
            self.state = PatchEngineState.APPLYING
            result = HANDLERS[operation.kind](self.graph_model, result.operation)

        if result.success:
            logger.info(f"Successfully applied patch operation '{operation.op_type}' to blueprint '{operation.blueprint}'")
        else:
            logger.warning(f"Failed to apply patch operation '{operation.op_type}' to blueprint '{operation.blueprint}'")
        return result

    # =========================================================================
    # Errors
    # =========================================================================

    def _busy_outcome(self) -> PatchOutcome:
        message = "Patch engine is busy applying another patch"
        logger.error(f"PatchEngine Error: {message}")
        return PatchOutcome(success=False, error_code=PatchErrorCode.ENGINE_BUSY, error_message=message)

    def _clear_error(self):
        self._last_error = ""
        self._last_error_code = None

    def _set_error(self, error_code: Optional[PatchErrorCode], message: Optional[str]):
        self._last_error = message or ""
        self._last_error_code = error_code
        logger.error(f"PatchEngine Error: {self._last_error}")
