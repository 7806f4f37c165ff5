"""
Deterministic validation rules.

Column tables, field types and numeric domains for the three entity kinds.
Everything the validators decide on lives here so the rules stay in one place.
"""

CLIENTS = "Clients"
WORKERS = "Workers"
TASKS = "Tasks"

# Checked in order against the cleaned sheet name; first prefix wins.
SHEET_PREFIXES = (
    ("client", CLIENTS),
    ("worker", WORKERS),
    ("task", TASKS),
)

REQUIRED_COLUMNS = {
    CLIENTS: ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs", "GroupTag", "AttributesJSON"],
    WORKERS: ["WorkerID", "WorkerName", "Skills", "AvailableSlots", "MaxLoadPerPhase", "WorkerGroup", "QualificationLevel"],
    TASKS: ["TaskID", "TaskName", "Category", "Duration", "RequiredSkills", "PreferredPhases", "MaxConcurrent"],
}

ID_COLUMNS = {
    CLIENTS: "ClientID",
    WORKERS: "WorkerID",
    TASKS: "TaskID",
}

# Fields that must hold a value on every row.
REQUIRED_FIELDS = {
    CLIENTS: ["ClientID", "ClientName", "PriorityLevel"],
    WORKERS: ["WorkerID", "WorkerName"],
    TASKS: ["TaskID", "TaskName", "Duration"],
}

# Semantic type per field; selects the normalizer the row mapper applies.
STRING = "string"
NUMBER = "number"
SCALAR = "scalar"
STRING_LIST = "string_list"
NUMBER_LIST = "number_list"
PHASES = "phases"
JSON_OBJECT = "json"

FIELD_TYPES = {
    CLIENTS: {
        "ClientID": STRING,
        "ClientName": STRING,
        "PriorityLevel": NUMBER,
        "RequestedTaskIDs": STRING_LIST,
        "GroupTag": STRING,
        "AttributesJSON": JSON_OBJECT,
    },
    WORKERS: {
        "WorkerID": STRING,
        "WorkerName": STRING,
        "Skills": STRING_LIST,
        "AvailableSlots": NUMBER_LIST,
        "MaxLoadPerPhase": NUMBER,
        "WorkerGroup": STRING,
        "QualificationLevel": SCALAR,
    },
    TASKS: {
        "TaskID": STRING,
        "TaskName": STRING,
        "Category": STRING,
        "Duration": NUMBER,
        "RequiredSkills": STRING_LIST,
        "PreferredPhases": PHASES,
        "MaxConcurrent": NUMBER,
    },
}

# Inclusive integer domains: (minimum, maximum or None for unbounded).
PRIORITY_RANGE = (1, 5)
DURATION_RANGE = (1, None)
MAX_LOAD_RANGE = (0, None)
MAX_CONCURRENT_RANGE = (0, None)

# Widest "<start>-<end>" range a list cell may expand to.
MAX_RANGE_SPAN = 1000

# Free text containing any of these is treated as attempted JSON.
JSON_HINT_CHARS = ("{", "[", ":")

# Ingestion
CSV_DELIMITERS = [",", ";", "\t", "|"]
SNIFF_SAMPLE_CHARS = 4096
PLACEHOLDER_COLUMN_PREFIX = "__EMPTY"
