"""
Authorization-gated form controller.

Drives the create and edit forms of any entity:

    IDLE -> VALIDATING -> SUBMITTING -> SUCCESS
                 |             |
                 +-> FAILED <--+        FAILED -> IDLE on the next edit

The authorization check runs once, in mount(). A denied form never
validates and never reaches the network. Only one submission can be in
flight; submitting again while SUBMITTING does nothing.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from adminkit.src.api_client import ApiError
from adminkit.src.auth import AccessOperation, AccessService, AuthorizationContext
from adminkit.src.entities import EntityDescriptor
from adminkit.src.exceptions import AuthorizationError, ValidationError
from adminkit.src.navigation import Navigator
from adminkit.src.resource_client import ResourceClient
from adminkit.src.validation import ValidationSchema


logger = logging.getLogger("adminkit.forms")


class FormMode(str, Enum):
    """Whether the form creates a new record or edits an existing one."""

    CREATE = "create"
    EDIT = "edit"


class FormState(str, Enum):
    """Submission state of a form."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class FormController:
    """
    Form state, validation, submission and redirect for one entity.

    Attributes:
        entity: Entity being edited
        mode: Create or edit
        state: Current submission state
        draft: Current field values
        field_errors: Inline validation messages keyed by field
        failure: Why the last submission failed (ValidationError or ApiError)
        record: Record returned by the last successful submission
    """

    def __init__(
        self,
        entity: EntityDescriptor,
        client: ResourceClient,
        auth: AuthorizationContext,
        navigator: Navigator,
        record_id: Optional[str] = None,
        initial_values: Optional[Dict[str, Any]] = None,
        service: AccessService = AccessService.PROJECT,
        schema: Optional[ValidationSchema] = None,
    ):
        """
        Initialize the controller.

        Args:
            entity: Entity descriptor
            client: Resource client for the entity
            auth: Authorization context for the current session
            navigator: Receives the list route on success or cancel
            record_id: Record to edit; None for a create form
            initial_values: Overrides for the initial create draft
            service: Service scope used in the capability check
            schema: Validation schema (built from the entity by default)
        """
        self.entity = entity
        self.mode = FormMode.EDIT if record_id else FormMode.CREATE
        self.record_id = record_id
        self._client = client
        self._auth = auth
        self._navigator = navigator
        self._service = service
        self._schema = schema or ValidationSchema(entity)

        self._initial: Dict[str, Any] = entity.initial_draft() if self.mode is FormMode.CREATE else {}
        if initial_values:
            self._initial.update(initial_values)
        self.draft: Dict[str, Any] = dict(self._initial)

        self.state = FormState.IDLE
        self.field_errors: Dict[str, str] = {}
        self.failure: Optional[Exception] = None
        self.record: Optional[Dict[str, Any]] = None

        self._mounted = False
        self._authorized = False
        self._loaded = self.mode is FormMode.CREATE

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def operation(self) -> AccessOperation:
        return AccessOperation.CREATE if self.mode is FormMode.CREATE else AccessOperation.UPDATE

    @property
    def authorized(self) -> bool:
        return self._authorized

    @property
    def error(self) -> Optional[Exception]:
        """Banner error: the last request failure, if any."""
        if isinstance(self.failure, ValidationError):
            return None
        return self.failure

    @property
    def pending(self) -> bool:
        return self.state is FormState.SUBMITTING

    @property
    def submit_enabled(self) -> bool:
        return self._authorized and self._loaded and self.state is not FormState.SUBMITTING

    def _transition(self, state: FormState) -> None:
        logger.debug(f"{self.entity.name} {self.mode.value} form: {self.state.value} -> {state.value}")
        self.state = state

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def mount(self) -> None:
        """
        Run the authorization gate and, for edit forms, load the record.

        The capability check runs on the first call only; its outcome is
        final for the lifetime of the controller.

        Raises:
            AuthorizationError: If the session may not perform the operation
        """
        if not self._mounted:
            self._mounted = True
            self._authorized = await self._auth.authorize(
                self._service, self.entity.name, self.operation
            )

        if not self._authorized:
            self._navigator.push(self._auth.redirect_to)
            raise AuthorizationError(
                self._service.value,
                self.entity.name,
                self.operation.value,
                redirect_to=self._auth.redirect_to,
            )

        if self.mode is FormMode.EDIT and not self._loaded:
            await self._load()

    async def _load(self) -> None:
        try:
            record = await self._client.get(self.record_id)
        except ApiError as e:
            logger.warning(f"Failed to load {self.entity.name} {self.record_id}: {e}")
            self.failure = e
            return

        self._initial = {
            name: record.get(name) for name in self.entity.writable_fields if name in record
        }
        self.draft = dict(self._initial)
        self.record = record
        self.failure = None
        self._loaded = True

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> None:
        """
        Change one draft field.

        Editing a failed form returns it to IDLE and clears the banner
        and that field's message. No validation runs here.

        Raises:
            KeyError: If the entity has no such field
            ValueError: If the field is read-only
        """
        spec = self.entity.get_field(name)
        if spec.read_only:
            raise ValueError(f"Field '{name}' of '{self.entity.name}' is read-only")

        self.draft[name] = value
        self.field_errors.pop(name, None)
        if self.state is FormState.FAILED:
            self.failure = None
            self._transition(FormState.IDLE)

    def reset(self) -> None:
        """Restore the initial draft and clear errors."""
        self.draft = dict(self._initial)
        self.field_errors = {}
        self.failure = None

    def cancel(self) -> None:
        """Leave the form without persisting anything."""
        self.reset()
        self._navigator.push(self.entity.list_route)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def _changed_fields(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {
            name: value
            for name, value in values.items()
            if name not in self._initial or self._initial[name] != value
        }

    async def submit(self) -> FormState:
        """
        Validate and persist the draft.

        Returns:
            The state after the attempt

        Raises:
            RuntimeError: If mount() has not run
            AuthorizationError: If the form was denied at mount
        """
        if not self._mounted:
            raise RuntimeError("mount() must be awaited before submit()")
        if not self._authorized:
            raise AuthorizationError(
                self._service.value,
                self.entity.name,
                self.operation.value,
                redirect_to=self._auth.redirect_to,
            )
        if self.state is FormState.SUBMITTING:
            logger.debug(f"Ignoring submit on {self.entity.name} form: already submitting")
            return self.state
        if not self._loaded:
            return self.state

        self.failure = None
        self.field_errors = {}
        self._transition(FormState.VALIDATING)

        result = self._schema.validate(self.draft)
        if not result.valid:
            self.field_errors = dict(result.field_errors)
            self.failure = ValidationError(result.field_errors)
            self._transition(FormState.FAILED)
            return self.state

        values = {**self.draft, **result.values}
        self._transition(FormState.SUBMITTING)
        try:
            if self.mode is FormMode.CREATE:
                record = await self._client.create(values)
            else:
                record = await self._client.update(self.record_id, self._changed_fields(values))
        except ApiError as e:
            logger.warning(f"Submitting {self.entity.name} form failed: {e}")
            self.failure = e
            self._transition(FormState.FAILED)
            return self.state
        except Exception as e:
            self.failure = e
            self._transition(FormState.FAILED)
            raise

        self.record = record
        if self.mode is FormMode.EDIT and record:
            self._initial = {
                name: record.get(name) for name in self.entity.writable_fields if name in record
            }
        self._transition(FormState.SUCCESS)
        self.reset()
        self._navigator.push(self.entity.list_route)
        return self.state
