"""
Higher-level methods to manage a server deployment.

Each public function in this module should:

- perform a complete task, as needed by a script or user action
- avoid non-idempotent calls unless required by a prior state change
- stop at the first failure, without retrying or undoing earlier steps
"""
