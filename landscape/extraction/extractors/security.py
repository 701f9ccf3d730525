"""Security extractors: role definitions and assignments, user master."""

from __future__ import annotations

from landscape.extraction.base import BaseExtractor, ExpectedTable

_OPEN_END = "99991231"
_USER_TYPES = {"A": "dialog", "B": "system", "C": "communication", "L": "reference", "S": "service"}
# UFLAG values that mean the user is locked (admin, wrong logons, global)
_LOCK_FLAGS = {"32", "64", "128", "192"}


class RoleAssignmentExtractor(BaseExtractor):
    extractor_id = "ROLE_ASSIGNMENTS"
    module = "SEC"
    category = "security"
    display_name = "Role Assignments"
    expected_tables = (
        ExpectedTable("AGR_DEFINE", "Role definitions", critical=True),
        ExpectedTable("AGR_USERS", "Role to user assignments", critical=True),
    )

    def extract_live(self) -> dict:
        roles = [
            {
                "role": r["AGR_NAME"],
                "parent": r["PARENT_AGR"] or None,
                "createdBy": r["CREATE_USR"],
                "createdOn": r["CREATE_DAT"],
                "custom": r["AGR_NAME"][:1] in ("Z", "Y"),
            }
            for r in self.read_table("AGR_DEFINE", fields=["AGR_NAME", "PARENT_AGR", "CREATE_USR", "CREATE_DAT"])
        ]
        reference_day = self.context.system.fiscal_period_to or _OPEN_END
        assignments = [
            {
                "role": r["AGR_NAME"],
                "user": r["UNAME"],
                "validFrom": r["FROM_DAT"],
                "validTo": r["TO_DAT"],
                "active": (r["TO_DAT"] or _OPEN_END) >= reference_day,
            }
            for r in self.read_table("AGR_USERS", fields=["AGR_NAME", "UNAME", "FROM_DAT", "TO_DAT"])
        ]
        return {
            "roles": roles,
            "roleAssignments": assignments,
            "summary": {
                "roleCount": len(roles),
                "customRoles": sum(1 for r in roles if r["custom"]),
                "derivedRoles": sum(1 for r in roles if r["parent"]),
                "assignmentCount": len(assignments),
                "expiredAssignments": sum(1 for a in assignments if not a["active"]),
            },
        }


class SecurityExtractor(BaseExtractor):
    """User master and profile analysis.

    Reads the ROLE_ASSIGNMENTS result through the context to relate users
    to their roles; when that result is absent the role columns stay empty.
    """

    extractor_id = "SECURITY"
    module = "SEC"
    category = "security"
    display_name = "User Security"
    depends_on = ("ROLE_ASSIGNMENTS",)
    expected_tables = (
        ExpectedTable("USR02", "User logon data", critical=True),
        ExpectedTable("UST04", "User profiles"),
    )

    def extract_live(self) -> dict:
        profiles: dict[str, list[str]] = {}
        for r in self.read_table("UST04", fields=["BNAME", "PROFILE"]):
            profiles.setdefault(r["BNAME"], []).append(r["PROFILE"])

        roles_by_user: dict[str, list[str]] = {}
        role_result = self.context.get_result("ROLE_ASSIGNMENTS")
        for a in (role_result or {}).get("roleAssignments", []):
            if a["active"]:
                roles_by_user.setdefault(a["user"], []).append(a["role"])

        users = []
        for r in self.read_table("USR02", fields=["BNAME", "USTYP", "GLTGB", "UFLAG", "TRDAT", "CLASS"]):
            name = r["BNAME"]
            users.append({
                "user": name,
                "type": _USER_TYPES.get(r["USTYP"], "unknown"),
                "validTo": None if r["GLTGB"] in (None, "", "00000000") else r["GLTGB"],
                "locked": str(r["UFLAG"] or "0") in _LOCK_FLAGS,
                "lastLogon": r["TRDAT"],
                "group": r["CLASS"],
                "profiles": sorted(profiles.get(name, [])),
                "roles": sorted(roles_by_user.get(name, [])),
            })

        sap_all = [{"user": u["user"], "locked": u["locked"]} for u in users if "SAP_ALL" in u["profiles"]]
        dialog_without_roles = [
            u["user"] for u in users
            if u["type"] == "dialog" and not u["locked"] and not u["roles"] and role_result is not None
        ]
        return {
            "users": users,
            "usersWithSapAll": sap_all,
            "dialogUsersWithoutRoles": sorted(dialog_without_roles),
            "roleDataAvailable": role_result is not None,
            "summary": {
                "userCount": len(users),
                "locked": sum(1 for u in users if u["locked"]),
                "dialog": sum(1 for u in users if u["type"] == "dialog"),
                "sapAll": len(sap_all),
            },
        }
