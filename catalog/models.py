from dataclasses import dataclass


@dataclass
class MenuItem:
    """
    One catalog entry as it is stored locally.
    Every text field is a plain string, never None; price is kept as text.
    """
    id: int
    name: str = ""
    price: str = ""
    description: str = ""
    image: str = ""
    category: str = ""
