"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Package initialization for the budgeting app.
-------------------------------------------------------------------------
"""
