from pydantic import BaseModel


class UserModel(BaseModel):
    """This class is used to create a user model for basic authentication.

    ``address`` is the identity the user acts as in every game operation.
    """
    username: str
    hash_password: str
    salt: str
    address: str
