from sqladmin import ModelView
from bloodnet.models import BloodInventory, BloodRequest


class BloodInventoryAdmin(ModelView, model=BloodInventory):
    # Stock only changes through the API so every write is classified and broadcast
    column_list = [
        BloodInventory.id,
        "blood_bank",
        BloodInventory.blood_type,
        BloodInventory.quantity,
        BloodInventory.availability_status,
        BloodInventory.cost_per_unit,
        BloodInventory.is_free,
        BloodInventory.expiry_date,
        BloodInventory.updated_by,
        BloodInventory.last_updated,
    ]

    column_labels = {
        "blood_bank": "Blood Bank",
    }

    column_formatters = {
        "blood_bank": lambda m, c: m.blood_bank.name if m.blood_bank else "N/A",
    }

    column_sortable_list = [
        BloodInventory.blood_type,
        BloodInventory.quantity,
        BloodInventory.last_updated,
    ]

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True

    name = "Blood Inventory"
    name_plural = "Blood Inventories"
    icon = "fa-solid fa-droplet"


class BloodRequestAdmin(ModelView, model=BloodRequest):
    column_list = [
        BloodRequest.id,
        BloodRequest.patient_name,
        BloodRequest.blood_type,
        BloodRequest.units_required,
        BloodRequest.urgency,
        BloodRequest.status,
        "hospital",
        BloodRequest.created_at,
    ]

    column_formatters = {
        "hospital": lambda m, c: m.hospital.name if m.hospital else "N/A",
    }

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True

    name = "Blood Request"
    name_plural = "Blood Requests"
    icon = "fa-solid fa-truck-medical"
