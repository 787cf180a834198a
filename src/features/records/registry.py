"""
Registro de tipos de entidad.

Cada tipo declara explícitamente sus endpoints, su clave natural, las
cadenas de alias de campos (p. ej. email = schoolEmail || personalEmail),
los campos buscables/filtrables y todo lo que necesita la importación.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import ColumnSpec, SortSpec


class EntityKind(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMINISTRATOR = "administrator"
    SCHOOL = "school"
    SUBJECT = "subject"
    TIMETABLE = "timetable"


@dataclass(frozen=True)
class EntityDefinition:
    kind: str
    label: str  # prefijo de archivos exportados (students_2025-01-15.xlsx)
    list_endpoint: Optional[str] = None
    create_path: Optional[str] = None

    # Campo canónico de la clave natural en altas/importación
    natural_key: Optional[str] = None
    # alias -> cadena de campos crudos, se usa el primero no vacío
    aliases: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    searchable_fields: Tuple[str, ...] = ("name", "email", "code")
    filter_fields: Tuple[str, ...] = ()
    case_insensitive_filters: Tuple[str, ...] = ()
    date_fields: Tuple[str, ...] = ()
    default_sort: Optional[SortSpec] = None

    # Importación
    required_fields: Tuple[str, ...] = ()
    validators: Dict[str, str] = field(default_factory=dict)
    field_mapping: Dict[str, str] = field(default_factory=dict)
    defaults: Dict[str, Any] = field(default_factory=dict)
    uppercase_fields: Tuple[str, ...] = ()
    needs_credentials: bool = False
    credential_email_fields: Tuple[str, ...] = ("schoolEmail", "personalEmail", "email")

    # Exportación
    export_columns: Tuple[ColumnSpec, ...] = ()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def resolve_field(record: Mapping[str, Any], name: str, definition: Optional[EntityDefinition] = None) -> Any:
    """Valor de `name` en el registro, siguiendo la cadena de alias si existe."""
    chain = definition.aliases.get(name) if definition else None
    if not chain:
        return record.get(name)
    for raw in chain:
        value = record.get(raw)
        if not _is_blank(value):
            return value
    return None


def record_key(record: Mapping[str, Any], definition: EntityDefinition) -> Optional[str]:
    """Clave natural normalizada (minúsculas, sin espacios) o None."""
    value = resolve_field(record, "key", definition)
    if _is_blank(value):
        return None
    return str(value).strip().lower()


# --- Tablas de mapeo de encabezados (lower/trim -> campo canónico) ---

_PERSON_MAPPING = {
    "name": "fullName",
    "full name": "fullName",
    "fullname": "fullName",
    "full_name": "fullName",
    "email": "schoolEmail",
    "school email": "schoolEmail",
    "schoolemail": "schoolEmail",
    "school_email": "schoolEmail",
    "personal email": "personalEmail",
    "personalemail": "personalEmail",
    "personal_email": "personalEmail",
    "phone": "phoneNumber",
    "phone number": "phoneNumber",
    "phonenumber": "phoneNumber",
    "mobile": "phoneNumber",
    "gender": "gender",
    "date of birth": "dateOfBirth",
    "dob": "dateOfBirth",
    "dateofbirth": "dateOfBirth",
    "school code": "schoolCode",
    "schoolcode": "schoolCode",
    "school_code": "schoolCode",
    "username": "username",
}

_STUDENT_MAPPING = {
    **_PERSON_MAPPING,
    "student name": "fullName",
    "admission number": "admissionNumber",
    "admission no": "admissionNumber",
    "admissionnumber": "admissionNumber",
    "id": "admissionNumber",
    "roll no": "rollNo",
    "roll number": "rollNo",
    "rollno": "rollNo",
    "class": "gradeLevel",
    "grade": "gradeLevel",
    "grade level": "gradeLevel",
    "gradelevel": "gradeLevel",
    "section": "section",
    "academic year": "academicYear",
    "academicyear": "academicYear",
    "admission date": "admissionDate",
    "admissiondate": "admissionDate",
    "status": "status",
    "guardian name": "guardianName",
    "guardian relation": "guardianRelation",
    "guardian contact": "guardianContact",
    "nationality": "nationality",
    "blood group": "bloodGroup",
    "address": "address",
    "city": "city",
    "state": "state",
    "country": "country",
    "pin code": "pinCode",
    "pincode": "pinCode",
}

_TEACHER_MAPPING = {
    **_PERSON_MAPPING,
    "teacher name": "fullName",
    "teacher code": "teacherCode",
    "teachercode": "teacherCode",
    "code": "teacherCode",
    "id": "teacherCode",
    "department": "department",
    "designation": "designation",
    "experience": "experience",
}

_ADMIN_MAPPING = {
    **_PERSON_MAPPING,
    "admin name": "fullName",
    "designation": "designation",
    "role": "designation",
}

_SCHOOL_MAPPING = {
    "school code": "schoolCode",
    "schoolcode": "schoolCode",
    "code": "schoolCode",
    "id": "schoolCode",
    "school name": "schoolName",
    "schoolname": "schoolName",
    "name": "schoolName",
    "email": "email",
    "school email": "email",
    "phone": "phoneNumber",
    "phone number": "phoneNumber",
    "address": "address",
    "city": "city",
    "state": "state",
    "country": "country",
    "pin code": "pinCode",
    "pincode": "pinCode",
    "active": "isActive",
    "is active": "isActive",
}

_SUBJECT_MAPPING = {
    "subject code": "subjectCode",
    "subjectcode": "subjectCode",
    "code": "subjectCode",
    "subject name": "subjectName",
    "subjectname": "subjectName",
    "subject": "subjectName",
    "name": "subjectName",
    "grade": "gradeLevel",
    "grade level": "gradeLevel",
    "class": "gradeLevel",
    "curriculum": "curriculumType",
    "curriculum type": "curriculumType",
    "teacher code": "teacherCode",
    "school code": "schoolCode",
    "description": "description",
}

_TIMETABLE_MAPPING = {
    "grade": "gradeLevel",
    "grade level": "gradeLevel",
    "class": "gradeLevel",
    "section": "section",
    "day": "dayOfWeek",
    "day of week": "dayOfWeek",
    "dayofweek": "dayOfWeek",
    "period": "periodNumber",
    "period number": "periodNumber",
    "start time": "startTime",
    "starttime": "startTime",
    "end time": "endTime",
    "endtime": "endTime",
    "subject code": "subjectCode",
    "subject name": "subjectName",
    "subject": "subjectName",
    "teacher code": "teacherCode",
    "teacher": "teacherCode",
    "room": "roomNumber",
    "room number": "roomNumber",
    "academic year": "academicYear",
}


GENERIC = EntityDefinition(kind="generic", label="records")

STUDENT = EntityDefinition(
    kind=EntityKind.STUDENT.value,
    label="students",
    list_endpoint="/midland/admin/students/all",
    create_path="/midland/admin/students/create",
    natural_key="admissionNumber",
    aliases={
        "key": ("admissionNumber", "rollNo", "studentUid"),
        "id": ("admissionNumber", "rollNo"),
        "name": ("fullName",),
        "email": ("schoolEmail", "personalEmail"),
        "class": ("gradeLevel",),
    },
    searchable_fields=("id", "name", "email"),
    filter_fields=("gradeLevel", "section", "status"),
    date_fields=("admissionDate", "dateOfBirth"),
    required_fields=("fullName", "schoolEmail"),
    validators={
        "schoolEmail": "email",
        "personalEmail": "email",
        "phoneNumber": "phone",
        "guardianContact": "phone",
        "dateOfBirth": "birth_date",
        "admissionDate": "date",
    },
    field_mapping=_STUDENT_MAPPING,
    defaults={"status": "Active"},
    needs_credentials=True,
    export_columns=(
        ColumnSpec(key="admissionNumber", label="Admission Number"),
        ColumnSpec(key="fullName", label="Full Name"),
        ColumnSpec(key="schoolEmail", label="School Email"),
        ColumnSpec(key="gradeLevel", label="Class"),
        ColumnSpec(key="section", label="Section"),
        ColumnSpec(key="status", label="Status"),
    ),
)

TEACHER = EntityDefinition(
    kind=EntityKind.TEACHER.value,
    label="teachers",
    list_endpoint="/midland/admin/teachers/all",
    create_path="/midland/admin/teachers/create",
    natural_key="teacherCode",
    aliases={
        "key": ("teacherCode", "schoolEmail"),
        "id": ("teacherCode", "schoolEmail"),
        "name": ("fullName",),
        "email": ("schoolEmail", "personalEmail"),
    },
    searchable_fields=("name", "email"),
    filter_fields=("department", "designation"),
    date_fields=("dateOfBirth",),
    required_fields=("fullName", "schoolEmail"),
    validators={
        "schoolEmail": "email",
        "personalEmail": "email",
        "phoneNumber": "phone",
        "dateOfBirth": "birth_date",
    },
    field_mapping=_TEACHER_MAPPING,
    needs_credentials=True,
    export_columns=(
        ColumnSpec(key="teacherCode", label="Teacher Code"),
        ColumnSpec(key="fullName", label="Full Name"),
        ColumnSpec(key="schoolEmail", label="School Email"),
        ColumnSpec(key="department", label="Department"),
        ColumnSpec(key="designation", label="Designation"),
    ),
)

ADMINISTRATOR = EntityDefinition(
    kind=EntityKind.ADMINISTRATOR.value,
    label="admins",
    list_endpoint="/midland/admin/all",
    create_path="/midland/admin/create",
    natural_key="schoolEmail",
    aliases={
        "key": ("email", "schoolEmail", "personalEmail", "id"),
        "id": ("adminCode", "id", "email", "schoolEmail"),
        "name": ("fullName", "firstName", "lastName"),
        "email": ("email", "schoolEmail", "personalEmail"),
    },
    searchable_fields=("name", "email"),
    filter_fields=("designation",),
    required_fields=("fullName", "schoolEmail"),
    validators={
        "schoolEmail": "email",
        "personalEmail": "email",
        "phoneNumber": "phone",
    },
    field_mapping=_ADMIN_MAPPING,
    needs_credentials=True,
    export_columns=(
        ColumnSpec(key="fullName", label="Full Name"),
        ColumnSpec(key="schoolEmail", label="School Email"),
        ColumnSpec(key="designation", label="Designation"),
        ColumnSpec(key="phoneNumber", label="Phone Number"),
    ),
)

SCHOOL = EntityDefinition(
    kind=EntityKind.SCHOOL.value,
    label="schools",
    list_endpoint="/midland/admin/schools/all",
    create_path="/midland/admin/schools/create",
    natural_key="schoolCode",
    aliases={
        "key": ("schoolCode", "id"),
        "id": ("schoolCode", "id"),
        "name": ("schoolName", "name"),
        "email": ("email", "schoolEmail"),
    },
    searchable_fields=("id", "name", "email"),
    filter_fields=("city", "state", "country"),
    required_fields=("schoolCode", "schoolName"),
    validators={
        "email": "email",
        "phoneNumber": "phone",
    },
    field_mapping=_SCHOOL_MAPPING,
    defaults={"isActive": True},
    export_columns=(
        ColumnSpec(key="schoolCode", label="School Code"),
        ColumnSpec(key="schoolName", label="School Name"),
        ColumnSpec(key="email", label="Email"),
        ColumnSpec(key="city", label="City"),
        ColumnSpec(key="phoneNumber", label="Phone Number"),
    ),
)

SUBJECT = EntityDefinition(
    kind=EntityKind.SUBJECT.value,
    label="subjects",
    list_endpoint="/midland/users/subjects/all",
    create_path="/midland/users/subjects/create",
    natural_key="subjectCode",
    aliases={
        "key": ("subjectCode", "subjectName"),
    },
    searchable_fields=("subjectName", "subjectCode"),
    filter_fields=("gradeLevel", "curriculumType"),
    default_sort=SortSpec(key="subjectName", direction="asc"),
    required_fields=("subjectCode", "subjectName"),
    field_mapping=_SUBJECT_MAPPING,
    uppercase_fields=("subjectCode",),
    export_columns=(
        ColumnSpec(key="subjectCode", label="Subject Code"),
        ColumnSpec(key="subjectName", label="Subject Name"),
        ColumnSpec(key="gradeLevel", label="Grade Level"),
        ColumnSpec(key="curriculumType", label="Curriculum Type"),
    ),
)

TIMETABLE = EntityDefinition(
    kind=EntityKind.TIMETABLE.value,
    label="timetable",
    list_endpoint="/midland/users/timetables/active",
    create_path="/midland/users/timetables/create",
    natural_key="timetableCode",
    aliases={
        "key": ("timetableCode", "id"),
    },
    searchable_fields=("subjectName", "subjectCode", "roomNumber", "teacherCode"),
    filter_fields=("gradeLevel", "section", "dayOfWeek", "teacherCode", "academicYear"),
    case_insensitive_filters=("dayOfWeek",),
    required_fields=("gradeLevel", "section", "dayOfWeek", "subjectCode", "teacherCode"),
    validators={
        "periodNumber": "number",
        "startTime": "time",
        "endTime": "time",
    },
    field_mapping=_TIMETABLE_MAPPING,
    uppercase_fields=("section", "dayOfWeek", "subjectCode"),
    export_columns=(
        ColumnSpec(key="dayOfWeek", label="Day Of Week"),
        ColumnSpec(key="periodNumber", label="Period Number"),
        ColumnSpec(key="gradeLevel", label="Grade Level"),
        ColumnSpec(key="section", label="Section"),
        ColumnSpec(key="subjectCode", label="Subject Code"),
        ColumnSpec(key="subjectName", label="Subject Name"),
        ColumnSpec(key="teacherCode", label="Teacher Code"),
        ColumnSpec(key="roomNumber", label="Room Number"),
    ),
)


ENTITY_DEFINITIONS: Dict[str, EntityDefinition] = {
    d.kind: d for d in (STUDENT, TEACHER, ADMINISTRATOR, SCHOOL, SUBJECT, TIMETABLE)
}


def get_definition(kind: str) -> EntityDefinition:
    """Lanza KeyError si el tipo no existe."""
    return ENTITY_DEFINITIONS[(kind or "").strip().lower()]
