"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Core app initialization. Contains shared mixins, exceptions,
             domain events, notifications and the audit trail.
-------------------------------------------------------------------------
"""
