"""Domain errors raised by the service layer and mapped to HTTP responses."""


class ServiceError(Exception):
    """Base class for service-layer errors."""

    status_code = 500


class MenuNotFoundError(ServiceError):
    status_code = 404

    def __init__(self, menu_id: str) -> None:
        self.menu_id = menu_id
        super().__init__("Menu not found")


class MenuAccessDeniedError(ServiceError):
    status_code = 403

    def __init__(self, menu_id: str, action: str = "access") -> None:
        self.menu_id = menu_id
        super().__init__(f"Not authorized to {action} this menu")


class RestaurantOwnershipError(ServiceError):
    status_code = 403

    def __init__(self, restaurant_name: str) -> None:
        self.restaurant_name = restaurant_name
        super().__init__(f"You don't own the restaurant '{restaurant_name}'")


class MenuPersistenceError(ServiceError):
    status_code = 500


class EmailAlreadyRegisteredError(ServiceError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("User with this email already exists")


class DuplicateRestaurantError(ServiceError):
    status_code = 400

    def __init__(self, restaurant_name: str) -> None:
        self.restaurant_name = restaurant_name
        super().__init__(f"You already have a restaurant named '{restaurant_name}'")


class InvalidCredentialsError(ServiceError):
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class UserPersistenceError(ServiceError):
    status_code = 500
