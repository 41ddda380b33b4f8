from sqladmin import ModelView
from bloodnet.models import City, Hospital, BloodBank


class CityAdmin(ModelView, model=City):
    icon = "fa-solid fa-city"
    name = "City"
    name_plural = "Cities"

    column_list = [City.id, City.name, City.state, City.is_active, City.created_at]
    column_searchable_list = [City.name, City.state]

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True


class HospitalAdmin(ModelView, model=Hospital):
    icon = "fa-solid fa-hospital"
    name = "Hospital"
    name_plural = "Hospitals"

    column_list = [
        Hospital.id,
        Hospital.name,
        Hospital.phone,
        Hospital.is_government,
        "city",
        Hospital.is_active,
    ]
    column_formatters = {
        "city": lambda m, c: m.city.name if m.city else "N/A",
    }

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True


class BloodBankAdmin(ModelView, model=BloodBank):
    icon = "fa-solid fa-building-columns"
    name = "Blood Bank"
    name_plural = "Blood Banks"

    column_list = [
        BloodBank.id,
        BloodBank.name,
        BloodBank.phone,
        BloodBank.emergency_phone,
        "city",
        "hospital",
        BloodBank.is_24x7,
        BloodBank.is_active,
        BloodBank.updated_at,
    ]
    column_labels = {
        "city": "City",
        "hospital": "Hospital",
        BloodBank.is_24x7: "Open 24x7",
    }
    column_formatters = {
        "city": lambda m, c: m.city.name if m.city else "N/A",
        "hospital": lambda m, c: m.hospital.name if m.hospital else "N/A",
    }
    column_searchable_list = [BloodBank.name]

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True
