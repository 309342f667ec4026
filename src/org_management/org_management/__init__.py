"""Organization Management package.

Feature modules (users, units, departments, programs, dashboard) each expose a
repository protocol, a MySQL implementation, a service and a thin Flask
controller. Authorization rules live in ``authorization`` and the program
status state machine in ``programs.workflow``.
"""
