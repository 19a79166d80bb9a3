"""
Partner hospitals and national assistance programs.
Static catalog served to the assistance screens; filtered in memory.
"""

from typing import Dict, Any, List, Optional

CATEGORIES = ["All", "Local Hospital", "DOH Hospital", "SUC Hospital", "National Program"]

COMMON_REQUIREMENTS = {
    "LOCAL_HOSPITAL_INPATIENT": [
        "Clinical Abstract (for In-Patient)",
        "Certificate na Hindi Available ang Service (Certification of Unavailability)",
        "Mga Resulta ng Laboratory",
        "Social Case Study mula sa Social Worker",
        "Valid ID",
        "Voter's ID",
        "Certificate of Indigency mula sa Barangay",
        "Hospital Bill/Statement of Account",
    ],
    "LOCAL_HOSPITAL_OUTPATIENT": [
        "Medical Certificate (for Out-Patient)",
        "Certificate na Hindi Available ang Service (Certification of Unavailability)",
        "Mga Resulta ng Laboratory",
        "Social Case Study mula sa Social Worker (if applicable)",
        "Valid ID",
        "Voter's ID",
        "Certificate of Indigency mula sa Barangay",
    ],
    "DOH_BASIC_INPATIENT": [
        "Clinical Abstract",
        "Quotation o Bill",
        "Valid ID",
        "Certificate of Indigency mula sa Barangay",
        "Hospital Bill/Statement of Account",
    ],
    "DOH_BASIC_OUTPATIENT": [
        "Medical Certificate",
        "Quotation o Bill",
        "Valid ID",
        "Certificate of Indigency mula sa Barangay",
    ],
    "DOH_WITH_SOCIAL_CASE_INPATIENT": [
        "Clinical Abstract",
        "Social Case Study mula sa Social Worker",
        "Quotation o Bill",
        "Valid ID",
        "Certificate of Indigency mula sa Barangay",
        "Hospital Bill/Statement of Account",
    ],
    "DOH_WITH_SOCIAL_CASE_OUTPATIENT": [
        "Medical Certificate",
        "Social Case Study mula sa Social Worker",
        "Quotation o Bill",
        "Valid ID",
        "Certificate of Indigency mula sa Barangay",
    ],
    "PEDIATRIC_INPATIENT": [
        "Clinical Abstract",
        "Quotation o Bill",
        "Valid ID ng Magulang o Guardian",
        "Certificate of Indigency mula sa Barangay",
        "Birth Certificate ng Pasyente",
        "Hospital Bill/Statement of Account",
    ],
    "PEDIATRIC_OUTPATIENT": [
        "Medical Certificate",
        "Quotation o Bill",
        "Valid ID ng Magulang o Guardian",
        "Certificate of Indigency mula sa Barangay",
        "Birth Certificate ng Pasyente",
    ],
    "NKTI_INPATIENT": [
        "Clinical Abstract (Hindi lalagpas ng 3 buwan)",
        "Quotation o Bill (Lahat ng Pages)",
        "Valid ID (Dapat address ay Muntinlupa)",
        "Voter's ID o COMELEC Certification",
        "Certificate of Indigency mula sa Barangay",
        "Authorization Letter (kung kinakailangan)",
        "Hospital Bill/Statement of Account",
    ],
    "NKTI_OUTPATIENT": [
        "Medical Certificate (Hindi lalagpas ng 3 buwan)",
        "Quotation o Bill (Lahat ng Pages)",
        "Valid ID (Dapat address ay Muntinlupa)",
        "Voter's ID o COMELEC Certification",
        "Certificate of Indigency mula sa Barangay",
        "Authorization Letter (kung kinakailangan)",
    ],
}

VETERAN_PROOF = "Patunay ng Pagiging Veteran (Proof of Veteran Status)"


def _hospital(hospital_id: int, name: str, category: str, requirement_set: str,
              extra: Optional[List[str]] = None) -> Dict[str, Any]:
    extra = extra or []
    return {
        "id": hospital_id,
        "name": name,
        "type": "guarantee",
        "category": category,
        "color": "#4CAF50",
        "requirements": {
            "inpatient": COMMON_REQUIREMENTS[f"{requirement_set}_INPATIENT"] + extra,
            "outpatient": COMMON_REQUIREMENTS[f"{requirement_set}_OUTPATIENT"] + extra,
        },
    }


HOSPITALS: List[Dict[str, Any]] = [
    _hospital(1, "Medical Center Muntinlupa (MCM)", "Local Hospital", "LOCAL_HOSPITAL"),
    _hospital(2, "Philippine Heart Center", "DOH Hospital", "DOH_WITH_SOCIAL_CASE"),
    _hospital(3, "National Kidney and Transplant Institute (NKTI)", "DOH Hospital", "NKTI"),
    _hospital(4, "Ospital ng Muntinlupa", "Local Hospital", "LOCAL_HOSPITAL"),
    _hospital(7, "Dr. Jose N. Rodriguez Memorial Hospital and Sanitarium", "DOH Hospital", "DOH_BASIC"),
    _hospital(8, "Amang Rodriguez Memorial Medical Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(9, "East Avenue Medical Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(10, "Lung Center of the Philippines", "DOH Hospital", "DOH_BASIC"),
    _hospital(11, "Philippine Children's Medical Center", "DOH Hospital", "PEDIATRIC"),
    _hospital(12, "Philippine Orthopedic Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(13, "San Lazaro Hospital", "DOH Hospital", "DOH_BASIC"),
    _hospital(14, "Dr. Jose Fabella Memorial Hospital", "DOH Hospital", "DOH_BASIC"),
    _hospital(15, "Tondo Medical Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(16, "Quirino Memorial Medical Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(17, "Valenzuela Medical Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(18, "Jose R. Reyes Memorial Medical Center", "DOH Hospital", "DOH_BASIC"),
    _hospital(19, "Las Piñas General Hospital and Satellite Trauma Center", "Local Hospital", "LOCAL_HOSPITAL"),
    _hospital(20, "San Lorenzo Ruiz Women's Hospital", "Local Hospital", "LOCAL_HOSPITAL"),
    _hospital(21, "Veterans Memorial Medical Center", "DOH Hospital", "DOH_BASIC", [VETERAN_PROOF]),
    {
        "id": 22,
        "name": "National Center for Mental Health",
        "type": "guarantee",
        "category": "DOH Hospital",
        "color": "#4CAF50",
        "requirements": {
            "inpatient": [
                "Clinical Abstract/Psychiatric Evaluation",
                "Social Case Study mula sa Social Worker",
                "Valid ID",
                "Certificate of Indigency mula sa Barangay",
                "Barangay Clearance",
                "Hospital Bill/Statement of Account",
            ],
            "outpatient": [
                "Medical Certificate/Psychiatric Evaluation",
                "Social Case Study mula sa Social Worker",
                "Valid ID",
                "Certificate of Indigency mula sa Barangay",
                "Barangay Clearance",
            ],
        },
    },
    {
        "id": 23,
        "name": "Research Institute for Tropical Medicine",
        "type": "guarantee",
        "category": "DOH Hospital",
        "color": "#4CAF50",
        "requirements": {
            "inpatient": [
                "Clinical Abstract",
                "Laboratory Request/Resulta",
                "Valid ID",
                "Certificate of Indigency mula sa Barangay",
                "Referral mula sa Health Center",
                "Hospital Bill/Statement of Account",
            ],
            "outpatient": [
                "Medical Certificate",
                "Laboratory Request/Resulta",
                "Valid ID",
                "Certificate of Indigency mula sa Barangay",
                "Referral mula sa Health Center",
            ],
        },
    },
    _hospital(24, "National Children's Hospital", "DOH Hospital", "PEDIATRIC"),
    _hospital(25, "Philippine General Hospital", "SUC Hospital", "DOH_WITH_SOCIAL_CASE"),
    {
        "id": 5,
        "name": "DSWD Medical Assistance",
        "type": "dswd-medical",
        "category": "National Program",
        "color": "#9C27B0",
        "requirements": [
            "DSWD Request Form",
            "Certificate of Indigency mula sa Barangay",
            "Medical Certificate/Abstract",
            "Reseta o Laboratory Request",
            "Hindi pa Bayad na Hospital Bill",
            "Social Case Study (para sa dialysis/cancer)",
        ],
    },
    {
        "id": 6,
        "name": "DSWD Burial Assistance",
        "type": "dswd-burial",
        "category": "National Program",
        "color": "#9C27B0",
        "requirements": [
            "Death Certificate (Certified True Copy)",
            "Kontrata sa Punerarya (Funeral Contract)",
            "Valid ID ng Nag-aasikaso",
            "Certificate of Indigency mula sa Barangay",
            "Barangay Certification",
        ],
    },
]

OFFICE_ADDRESS = {
    "floor": "3rd Floor",
    "location": "Alabang Public Market",
    "street": "123 Muntinlupa Boulevard",
    "barangay": "Barangay Alabang",
    "city": "Muntinlupa City",
    "zip": "1780",
    "phone": "(02) 8123-4567",
    "email": "office@fresnedi.gov.ph",
    "hours": "Monday to Friday: 8:00 AM - 5:00 PM",
}


def filter_hospitals(category: str = "All", query: str = "") -> List[Dict[str, Any]]:
    """Linear scan by category and case-insensitive name/category substring."""
    needle = (query or "").strip().lower()
    results = []
    for hospital in HOSPITALS:
        if category and category != "All" and hospital["category"] != category:
            continue
        if needle and needle not in hospital["name"].lower() and needle not in hospital["category"].lower():
            continue
        results.append(hospital)
    return results


def get_hospital(hospital_id: int) -> Optional[Dict[str, Any]]:
    return next((h for h in HOSPITALS if h["id"] == hospital_id), None)


def requirements_for(hospital: Dict[str, Any], patient_status: str = "outpatient") -> List[str]:
    requirements = hospital["requirements"]
    if isinstance(requirements, dict):
        return list(requirements.get(patient_status, requirements["outpatient"]))
    return list(requirements)
