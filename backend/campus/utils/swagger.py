# backend/campus/utils/swagger.py
"""OpenAPI document for the backend endpoints."""

ERROR_RESPONSES = {
    "400": "Bad request or validation failure",
    "401": "Missing, invalid or expired token",
    "403": "Role or ownership check failed",
    "404": "Entity not found",
    "409": "Uniqueness conflict",
}


def _json(schema):
    return {"application/json": {"schema": schema}}


def _ref(name):
    return {"$ref": f"#/components/schemas/{name}"}


def _operation(tag, summary, ok="200", body=None, data=None, secured=True, errors=(), params=None):
    """Build one operation with the standard envelope responses."""
    envelope = {
        "allOf": [_ref("Success")] + (
            [{"type": "object", "properties": {"data": data}}] if data else []
        )
    }
    responses = {ok: {"description": "Success", "content": _json(envelope)}}
    for code in errors:
        responses[code] = {"description": ERROR_RESPONSES[code], "content": _json(_ref("Error"))}

    operation = {"tags": [tag], "summary": summary, "responses": responses}
    if secured:
        operation["security"] = [{"bearerAuth": []}]
    if body:
        operation["requestBody"] = {"required": True, "content": _json(body)}
    if params:
        operation["parameters"] = params
    return operation


def _path_param(name):
    return {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}


def _query(name, schema_type="string"):
    return {"name": name, "in": "query", "required": False, "schema": {"type": schema_type}}


def _object(required, **properties):
    return {"type": "object", "required": list(required), "properties": properties}


STRING = {"type": "string"}
NUMBER = {"type": "number"}
INTEGER = {"type": "integer"}
DATE = {"type": "string", "format": "date"}
TIME = {"type": "string", "example": "08:00"}

SCHEDULE_BODY = _object(
    ["date", "start_time", "end_time"],
    course_id=STRING, course_code=STRING, course_name=STRING, lecturer_id=STRING,
    room=STRING, day_of_week={"type": "integer", "minimum": 0, "maximum": 6},
    date=DATE, start_time=TIME, end_time=TIME,
)


def generate_swagger_spec():
    """Generate OpenAPI/Swagger specification."""
    return {
        "openapi": "3.0.0",
        "info": {
            "title": "Campus Backend API",
            "description": "Authentication, QR attendance, campus tap in/out, gate access, "
                           "schedules and course grades.",
            "version": "1.0.0",
        },
        "servers": [{"url": "/api/v1", "description": "Current server"}],
        "components": {
            "securitySchemes": {
                "bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
            },
            "schemas": {
                "Success": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean", "default": True},
                        "message": STRING,
                        "data": {"type": "object"},
                        "meta": {"type": "object"},
                    }
                },
                "Error": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean", "default": False},
                        "error": {
                            "type": "object",
                            "properties": {
                                "code": {"type": "string", "enum": [
                                    "NOT_FOUND", "UNAUTHORIZED", "FORBIDDEN", "BAD_REQUEST",
                                    "VALIDATION_FAILED", "CONFLICT", "INTERNAL_ERROR"
                                ]},
                                "message": STRING,
                            }
                        }
                    }
                },
                "QRSession": _object(
                    [], session_id=STRING, schedule_id=STRING, kind=STRING,
                    qr_code={"type": "string", "description": "PNG data URI"},
                    qr_data={"type": "string", "description": "Encoded payload"},
                    expires_at={"type": "string", "format": "date-time"},
                ),
                "GateDecision": _object(
                    [], valid={"type": "boolean"},
                    tap_outcome={"type": "string", "enum": ["tap_in", "tap_out", "denied"]},
                    message=STRING,
                    holder={"type": "object", "description": "Name, number and program or unit"},
                ),
                "AttendanceRecord": _object(
                    [], id=STRING, user_id=STRING, session_id=STRING, schedule_id=STRING,
                    kind={"type": "string", "enum": ["kelas", "kampus"]},
                    status={"type": "string", "enum": ["present", "excused", "sick", "absent", "late"]},
                    date=DATE, check_in_time=STRING, check_out_time=STRING,
                    latitude=NUMBER, longitude=NUMBER, notes=STRING,
                ),
            },
        },
        "paths": {
            "/auth/register": {"post": _operation(
                "Authentication", "Register a user with its role detail", ok="201", secured=False,
                body=_object(["email", "password", "role", "name"],
                             email=STRING, password={"type": "string", "minLength": 8},
                             role={"type": "string", "enum": ["student", "lecturer", "staff"]},
                             name=STRING, student_number=STRING, employee_number=STRING),
                errors=("400", "403", "409"))},
            "/auth/login": {"post": _operation(
                "Authentication", "Login", secured=False,
                body=_object(["email", "password"], email=STRING, password=STRING),
                data=_object([], access_token=STRING, refresh_token=STRING),
                errors=("400", "401", "403"))},
            "/auth/refresh": {"post": _operation(
                "Authentication", "Exchange a refresh token (sent as bearer)",
                data=_object([], access_token=STRING), errors=("401",))},
            "/auth/me": {"get": _operation("Authentication", "Current user", errors=("401",))},
            "/attendance/qr/generate": {"post": _operation(
                "Attendance", "Generate an attendance QR session", ok="201",
                body=_object(["type"], schedule_id=STRING,
                             type={"type": "string", "enum": ["kelas", "kampus"]},
                             duration={"type": "integer", "description": "Minutes, default 15"}),
                data=_ref("QRSession"), errors=("400", "401", "403", "404", "409"))},
            "/attendance/qr/scan": {"post": _operation(
                "Attendance", "Scan an attendance QR", ok="201",
                body=_object(["qr_data"], qr_data=STRING, latitude=NUMBER, longitude=NUMBER),
                data=_object([], attendance_id=STRING, status=STRING, message=STRING),
                errors=("400", "401", "409"))},
            "/attendance/sessions/{session_id}/deactivate": {"post": _operation(
                "Attendance", "Deactivate a session", params=[_path_param("session_id")],
                errors=("401", "403", "404"))},
            "/attendance/tap-in": {"post": _operation(
                "Attendance", "Campus tap in", ok="201",
                body=_object([], latitude=NUMBER, longitude=NUMBER),
                data=_ref("AttendanceRecord"), errors=("401", "409"))},
            "/attendance/tap-out": {"post": _operation(
                "Attendance", "Campus tap out", data=_ref("AttendanceRecord"), errors=("400", "401"))},
            "/attendance": {"get": _operation(
                "Attendance", "List attendance records",
                params=[_query("user_id"), _query("schedule_id"), _query("kind"), _query("status"),
                        _query("start_date"), _query("end_date"),
                        _query("page", "integer"), _query("per_page", "integer")],
                data={"type": "array", "items": _ref("AttendanceRecord")}, errors=("400", "401"))},
            "/attendance/manual": {"post": _operation(
                "Attendance", "Manual attendance entry", ok="201",
                body=_object(["user_id", "date"], user_id=STRING, schedule_id=STRING, kind=STRING,
                             status=STRING, date=DATE, notes=STRING),
                data=_ref("AttendanceRecord"), errors=("400", "401", "403", "404", "409"))},
            "/attendance/{attendance_id}": {"put": _operation(
                "Attendance", "Correct status or notes", params=[_path_param("attendance_id")],
                body=_object([], status=STRING, notes=STRING),
                data=_ref("AttendanceRecord"), errors=("400", "401", "403", "404"))},
            "/attendance/statistics": {"get": _operation(
                "Attendance", "Attendance statistics",
                params=[_query("user_id"), _query("start_date"), _query("end_date")],
                errors=("400", "401", "403"))},
            "/qr/class/{schedule_id}/regenerate": {"post": _operation(
                "QR", "Regenerate a class QR", ok="201", params=[_path_param("schedule_id")],
                data=_ref("QRSession"), errors=("401", "403", "404", "409"))},
            "/qr/access/generate": {"get": _operation(
                "Access", "Personal gate access QR", data=_ref("QRSession"), errors=("400", "401"))},
            "/qr/access/validate/{session_id}": {"get": _operation(
                "Access", "Validate a gate token and record the tap (staff readers)",
                params=[_path_param("session_id"), _query("gate_id")],
                data=_ref("GateDecision"), errors=("401", "403"))},
            "/qr/gate/validate": {"post": _operation(
                "Access", "Validate a scanned gate QR from a gate device",
                body=_object(["qr_data"], qr_data=STRING, gate_id=STRING),
                data=_ref("GateDecision"), secured=False, errors=("400", "401"))},
            "/qr/access/history": {"get": _operation(
                "Access", "Gate access history, newest first",
                params=[_query("user_id"), _query("gate_id"), _query("outcome"),
                        _query("page", "integer"), _query("per_page", "integer")],
                errors=("400", "401"))},
            "/schedules": {
                "get": _operation("Schedules", "List schedules",
                                  params=[_query("lecturer_id"), _query("course_id"),
                                          _query("day_of_week", "integer"), _query("date")],
                                  errors=("400", "401")),
                "post": _operation("Schedules", "Create schedule", ok="201", body=SCHEDULE_BODY,
                                   errors=("400", "401", "403", "404")),
            },
            "/schedules/{schedule_id}": {
                "get": _operation("Schedules", "Get schedule", params=[_path_param("schedule_id")],
                                  errors=("401", "404")),
                "put": _operation("Schedules", "Update schedule", params=[_path_param("schedule_id")],
                                  body=SCHEDULE_BODY, errors=("400", "401", "403", "404")),
                "delete": _operation("Schedules", "Delete schedule",
                                     params=[_path_param("schedule_id")],
                                     errors=("401", "403", "404")),
            },
            "/courses": {
                "get": _operation("Courses", "List courses", params=[_query("lecturer_id")],
                                  errors=("401",)),
                "post": _operation("Courses", "Create course", ok="201",
                                   body=_object(["code", "name"], code=STRING, name=STRING,
                                                credits=INTEGER, lecturer_id=STRING),
                                   errors=("400", "401", "403", "409")),
            },
            "/courses/{course_id}/enrollments": {"post": _operation(
                "Courses", "Enroll a student", ok="201", params=[_path_param("course_id")],
                body=_object(["student_id"], student_id=STRING),
                errors=("400", "401", "403", "404", "409"))},
            "/courses/enrollments/{enrollment_id}/grade": {"put": _operation(
                "Courses", "Update enrollment score and grade",
                params=[_path_param("enrollment_id")],
                body=_object([], score={"type": "number", "minimum": 0, "maximum": 100},
                             grade={"type": "string", "enum": ["A", "B", "C", "D", "E"]},
                             notes=STRING),
                errors=("400", "401", "403", "404"))},
        },
    }
