from .city import City
from .hospital import Hospital
from .blood_bank import BloodBank
from .inventory import BloodInventory
from .request import BloodRequest
