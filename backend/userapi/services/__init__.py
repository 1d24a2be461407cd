# Services package init
"""
User Directory API: Services Layer
=====================================

Service Inventory:
    - UserService: create / get / edit / delete / list, each a single
      store operation under the configured time budget
"""
