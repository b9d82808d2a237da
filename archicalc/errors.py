"""
Error taxonomy shared by the sync layers and services.

- AuthenticationRequired: the action needs an identity that is absent.
  Raised (or reported) before any store call is made.
- StoreError: the data store rejected or failed a call (database error,
  row-level policy rejection, unknown/expired share token).

A referenced item missing from local state is not an error; callers treat
it as a no-op.
"""


class AuthenticationRequired(Exception):
    def __init__(self, action: str = "this action"):
        self.action = action
        super().__init__(f"Authentication required for {action}")


class StoreError(Exception):
    def __init__(self, message: str, operation: str = ""):
        self.message = message
        self.operation = operation
        super().__init__(f"{operation}: {message}" if operation else message)
