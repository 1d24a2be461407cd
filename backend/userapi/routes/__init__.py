# Routes package init
"""
User Directory API: API Routes Package
=========================================

Route Inventory:
    - users.py:   GET    /users             (list every user)
                  GET    /user/{id}         (single user)
                  POST   /user              (create)
                  PUT    /user/{id}         (replace fields)
                  DELETE /user/{id}         (delete)
    - health.py:  GET    /health            (service health check)

Routes stay thin: extract path and body, call UserService, wrap the
result in the response envelope.
"""
