"""Constants for Google Sheets operations."""

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# Header row occupies sheet row 1; event row_index 0 lives on sheet row 2
HEADER_ROWS = 1
FIRST_DATA_ROW = 2

VALUE_INPUT_OPTION = "USER_ENTERED"

PUBLIC_CSV_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq"

# Substring aliases for public (header-driven) sheets
PUBLIC_DATE_HEADERS = ["дата", "date", "день"]
PUBLIC_COUNT_HEADERS = ["количество", "кол-во", "count", "amount"]
PUBLIC_DEPARTMENT_HEADERS = ["отдел", "department", "категория"]
PUBLIC_DEFAULT_DEPARTMENT = "Общий"

# Body fragments that mean the request origin is not allowed
ACCESS_DENIED_MARKERS = ("CORS", "Origin")
