from dataclasses import dataclass


@dataclass
class UserProfile:
    id: str                 # same as the user id
    default_currency: str = "USD"
    created_at: str = ""
    updated_at: str = ""
