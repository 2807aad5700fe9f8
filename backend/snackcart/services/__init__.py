# Services package init
"""
SnackCart Backend — Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).

Service Inventory:
    - FileService: Upload validation, storage, and cleanup
    - SnackService: List/get/create/update/delete over the snacks table
"""
