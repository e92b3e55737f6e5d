from railbook.models.reservation import Reservation
from railbook.models.dependent import Dependent

__all__ = ["Reservation", "Dependent"]
