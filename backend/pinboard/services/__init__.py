# Services package init
"""
Pinboard Backend: Services Layer
=================================

What:  Business logic between routes (HTTP) and the database.
How:   Services receive the request's AsyncSession as an argument, apply the
       business rules and raise domain exceptions from pinboard.exceptions.

Service Inventory:
    - PositionService: position CRUD and the position/owner transaction
    - UserService: user listing, signup, login
    - AuthService: bcrypt password hashes and JWT access tokens
    - GeocodingService (abstract) / GoogleGeocodingService: address lookup
    - FileService: image upload validation, storage and cleanup
"""
