import enum


class LocationType(str, enum.Enum):
    physical = "physical"
    person = "person"
