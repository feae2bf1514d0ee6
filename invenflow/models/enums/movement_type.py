import enum


class MovementType(str, enum.Enum):
    manual = "manual"
    bulk = "bulk"
    automatic = "automatic"
    split = "split"
    merge = "merge"
