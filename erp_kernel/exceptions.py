"""
Typed Exception Hierarchy for the ERP Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger and the transaction writers must react to specific
business failures (not enough stock, a paid document, an unbalanced entry)
without parsing message strings.  Every error therefore:

  1. Has its own exception class (catch by type, not message)
  2. Carries a CODE attribute (machine-readable, safe to return to a UI)
  3. Stores its context as attributes (not only in the message)

Example - WRONG way to handle errors:
    try:
        ledger.issue_stock(item_id, 12)
    except Exception as e:
        if "Insufficient" in str(e):   # FRAGILE
            ...

Example - RIGHT way:
    try:
        ledger.issue_stock(item_id, 12)
    except InsufficientStockError as e:
        return {"error": e.code, "available": e.available_quantity}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ErpKernelError (base)
    |
    +-- ValidationError
    |
    +-- InventoryError
    |   +-- ItemNotFoundError
    |   +-- InsufficientStockError
    |   +-- InvalidStockMovementError
    |   +-- LayerConsumedError
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- InvalidJournalLineError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |
    +-- ReversalError
    |   +-- EntryAlreadyReversedError
    |
    +-- DocumentError
    |   +-- DocumentNotFoundError
    |   +-- DocumentLockedError
    |
    +-- ApprovalError
    |   +-- InvalidApprovalTransitionError
    |
    +-- AuthorizationError
    |   +-- PermissionDeniedError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |
    +-- SystemResetError
    |   +-- ResetConfirmationError
    |
    +-- ModuleDisabledError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Validation      | VALIDATION_FAILED             | Bad input shape, missing field
----------------|-------------------------------|---------------------------------------
Inventory       | ITEM_NOT_FOUND                | Item id does not exist
                | INSUFFICIENT_STOCK            | Issue exceeds remaining layer quantity
                | INVALID_STOCK_MOVEMENT        | Service item, zero delta, bad warehouse
                | LAYER_CONSUMED                | Reversing a receipt whose stock is gone
----------------|-------------------------------|---------------------------------------
Posting         | UNBALANCED_ENTRY              | Debits != credits
                | INVALID_JOURNAL_LINE          | Negative or two-sided line
----------------|-------------------------------|---------------------------------------
Account         | ACCOUNT_NOT_FOUND             | Account code not in chart
                | ACCOUNT_INACTIVE              | Account deactivated
----------------|-------------------------------|---------------------------------------
Reversal        | ENTRY_ALREADY_REVERSED        | Entry reversed before
----------------|-------------------------------|---------------------------------------
Document        | DOCUMENT_NOT_FOUND            | Bill/invoice/run id does not exist
                | DOCUMENT_LOCKED               | Edit/delete of a non-OPEN document
----------------|-------------------------------|---------------------------------------
Approval        | INVALID_APPROVAL_TRANSITION   | Approving a bill that is not PENDING
Authorization   | PERMISSION_DENIED             | Role may not perform the action
Workflow        | INVALID_TRANSITION            | State machine has no such transition
Reset           | RESET_CONFIRMATION_MISMATCH   | Wrong typed confirmation code
Profile         | MODULE_DISABLED               | Module off for this business profile

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError: domain errors are catchable as a
   group and never confused with programming errors.
2. ``code`` is a class attribute: static per type, readable without an
   instance.
3. All context is stored as attributes: the structured log formatter
   emits every public attribute as ``exc_<name>``.
"""


class ErpKernelError(Exception):
    """
    Base exception for all ERP kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ERP_KERNEL_ERROR"


# Validation


class ValidationError(ErpKernelError):
    """Input failed validation before any mutation happened."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Inventory-related exceptions


class InventoryError(ErpKernelError):
    """Base exception for inventory ledger errors."""

    code: str = "INVENTORY_ERROR"


class ItemNotFoundError(InventoryError):
    """Item does not exist."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item #{item_id} not found")


class InsufficientStockError(InventoryError):
    """Requested quantity exceeds the remaining quantity across layers."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: int,
        requested_quantity: int,
        available_quantity: int,
        warehouse_id: int | None = None,
    ):
        self.item_id = item_id
        self.requested_quantity = requested_quantity
        self.available_quantity = available_quantity
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Insufficient stock for item #{item_id}. "
            f"Required: {requested_quantity}, Available: {available_quantity}"
        )


class InvalidStockMovementError(InventoryError):
    """The requested movement cannot be applied to this item."""

    code: str = "INVALID_STOCK_MOVEMENT"

    def __init__(self, item_id: int, reason: str):
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"Invalid stock movement for item #{item_id}: {reason}")


class LayerConsumedError(InventoryError):
    """A layer created by a document was already drawn by another document."""

    code: str = "LAYER_CONSUMED"

    def __init__(self, layer_id: int, source_type: str, source_id: int, consumed_quantity: int):
        self.layer_id = layer_id
        self.source_type = source_type
        self.source_id = source_id
        self.consumed_quantity = consumed_quantity
        super().__init__(
            f"Layer #{layer_id} from {source_type} #{source_id} has "
            f"{consumed_quantity} unit(s) already consumed and cannot be reversed"
        )


# Posting-related exceptions


class PostingError(ErpKernelError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: int, credits: int):
        self.debits = debits
        self.credits = credits
        super().__init__(f"Unbalanced entry: debits={debits}, credits={credits}")


class InvalidJournalLineError(PostingError):
    """A journal line is malformed."""

    code: str = "INVALID_JOURNAL_LINE"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Invalid journal line for account {account_code}: {reason}")


# Account-related exceptions


class AccountError(ErpKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account code is not in the chart of accounts."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} not found")


class AccountInactiveError(AccountError):
    """Account is inactive."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} is inactive")


# Reversal-related exceptions


class ReversalError(ErpKernelError):
    """Base exception for reversal-related errors."""

    code: str = "REVERSAL_ERROR"


class EntryAlreadyReversedError(ReversalError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, journal_entry_id: int):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Entry {journal_entry_id} has already been reversed")


# Document-related exceptions


class DocumentError(ErpKernelError):
    """Base exception for transaction document errors."""

    code: str = "DOCUMENT_ERROR"


class DocumentNotFoundError(DocumentError):
    """Document does not exist."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_id: int):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} #{document_id} not found")


class DocumentLockedError(DocumentError):
    """Document is not in an editable state."""

    code: str = "DOCUMENT_LOCKED"

    def __init__(self, document_type: str, document_id: int, status: str, reason: str | None = None):
        self.document_type = document_type
        self.document_id = document_id
        self.status = status
        self.reason = reason
        message = f"Cannot modify {status} {document_type} #{document_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Approval-related exceptions


class ApprovalError(ErpKernelError):
    """Base exception for approval errors."""

    code: str = "APPROVAL_ERROR"


class InvalidApprovalTransitionError(ApprovalError):
    """Document is not awaiting approval."""

    code: str = "INVALID_APPROVAL_TRANSITION"

    def __init__(self, document_type: str, document_id: int, current_status: str):
        self.document_type = document_type
        self.document_id = document_id
        self.current_status = current_status
        super().__init__(
            f"{document_type} #{document_id} is {current_status}, not PENDING approval"
        )


# Authorization-related exceptions


class AuthorizationError(ErpKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """Actor's role does not allow the action."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, actor_id: str, role: str, action: str):
        self.actor_id = actor_id
        self.role = role
        self.action = action
        super().__init__(f"Role {role} may not {action}")


# Workflow-related exceptions


class WorkflowError(ErpKernelError):
    """Base exception for state machine errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """No transition for the requested action from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, action: str):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"Workflow {workflow} has no '{action}' transition from {from_state}"
        )


# System reset


class SystemResetError(ErpKernelError):
    """Base exception for the destructive reset operation."""

    code: str = "SYSTEM_RESET_ERROR"


class ResetConfirmationError(SystemResetError):
    """Typed confirmation code did not match."""

    code: str = "RESET_CONFIRMATION_MISMATCH"

    def __init__(self, provided: str):
        self.provided = provided
        super().__init__("Invalid confirmation code")


# Business profile


class ModuleDisabledError(ErpKernelError):
    """Module is not enabled for the active business profile."""

    code: str = "MODULE_DISABLED"

    def __init__(self, module: str, business_type: str):
        self.module = module
        self.business_type = business_type
        super().__init__(f"Module {module} is not enabled for {business_type} businesses")
