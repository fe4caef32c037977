# Routes package init
"""
Pinboard Backend: API Routes Package
=====================================

Route Inventory:
    - positions.py:  GET    /api/positions
                     GET    /api/positions/{id}
                     GET    /api/positions/user/{id}
                     POST   /api/positions            (auth, multipart)
                     PUT    /api/positions/{id}       (auth, also PATCH)
                     DELETE /api/positions/{id}       (auth)
    - users.py:      GET    /api/users
                     POST   /api/users/signup         (multipart)
                     POST   /api/users/login
    - uploads.py:    GET    /uploads/images/{name}
    - health.py:     GET    /health

Routes stay thin: validate input, call a service, shape the response.
"""
