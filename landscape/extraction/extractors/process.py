"""Process evidence extractors: change documents, usage statistics, batch jobs.

Change documents are streamed page by page and checkpointed; they are the
largest tables in any landscape and feed the process-mining engine.
"""

from __future__ import annotations

from landscape.extraction.base import BaseExtractor, ExpectedTable

_JOB_STATUS = {
    "S": "scheduled",
    "R": "running",
    "F": "finished",
    "A": "aborted",
    "P": "planned",
    "Y": "ready",
}


class ChangeDocumentExtractor(BaseExtractor):
    extractor_id = "CHANGE_DOCUMENTS"
    module = "PROCESS"
    category = "process"
    display_name = "Change Documents"
    schema_version = 2
    expected_tables = (
        ExpectedTable("CDHDR", "Change document headers", critical=True, streamed=True),
        ExpectedTable("CDPOS", "Change document items", streamed=True),
        ExpectedTable("TCDOB", "Change document objects"),
    )

    def extract_live(self) -> dict:
        headers = [
            {
                "objectClass": r["OBJECTCLAS"],
                "objectId": r["OBJECTID"],
                "changeNumber": r["CHANGENR"],
                "user": r["USERNAME"],
                "date": r["UDATE"],
                "time": r["UTIME"],
                "tcode": r["TCODE"],
                "changeIndicator": r["CHANGE_IND"] or "U",
            }
            for r in self.stream_table(
                "CDHDR",
                fields=["OBJECTCLAS", "OBJECTID", "CHANGENR", "USERNAME", "UDATE", "UTIME", "TCODE", "CHANGE_IND"],
            )
        ]
        items = [
            {
                "objectClass": r["OBJECTCLAS"],
                "objectId": r["OBJECTID"],
                "changeNumber": r["CHANGENR"],
                "table": r["TABNAME"],
                "field": r["FNAME"],
                "changeIndicator": r["CHNGIND"],
                "valueNew": r["VALUE_NEW"],
                "valueOld": r["VALUE_OLD"],
                "line": line,
            }
            for line, r in enumerate(self.stream_table(
                "CDPOS",
                fields=["OBJECTCLAS", "OBJECTID", "CHANGENR", "TABNAME", "FNAME", "CHNGIND", "VALUE_NEW", "VALUE_OLD"],
            ))
        ]
        object_classes = [
            {"objectClass": r["OBJECT"], "table": r["TABNAME"]}
            for r in self.read_table("TCDOB", fields=["OBJECT", "TABNAME"])
        ]
        return {
            "changeHeaders": headers,
            "changeItems": items,
            "objectClasses": object_classes,
            "summary": {
                "headerCount": len(headers),
                "itemCount": len(items),
                "caseCount": len({(h["objectClass"], h["objectId"]) for h in headers}),
                "users": len({h["user"] for h in headers}),
            },
        }


class UsageStatisticsExtractor(BaseExtractor):
    extractor_id = "USAGE_STATISTICS"
    module = "PROCESS"
    category = "process"
    display_name = "Transaction Usage Statistics"
    expected_tables = (
        ExpectedTable("TSTC", "Transaction codes", critical=True),
    )

    def extract_live(self) -> dict:
        transactions = [
            {"tcode": r["TCODE"], "program": r["PGMNA"]}
            for r in self.read_table("TSTC", fields=["TCODE", "PGMNA"])
        ]
        reply = self.invoke_remote("SWNC_GET_WORKLOAD_STATISTIC", {"period": "month"}) or {}
        usage = [
            {
                "tcode": row.get("tcode"),
                "executions": int(row.get("executions") or 0),
                "avgResponseMs": int(row.get("avgResponseMs") or 0),
                "users": int(row.get("users") or 0),
            }
            for row in reply.get("transactions") or []
        ]
        usage.sort(key=lambda u: (-u["executions"], u["tcode"]))
        top = [
            {
                "user": row.get("user"),
                "tcodes": [{"tcode": t.get("tcode"), "count": int(t.get("count") or 0)} for t in row.get("tcodes") or []],
            }
            for row in reply.get("userTopTransactions") or []
        ]
        known = {t["tcode"] for t in transactions}
        executed = {u["tcode"] for u in usage if u["executions"] > 0}
        return {
            "transactions": transactions,
            "transactionUsage": usage,
            "userTopTransactions": top,
            "unusedTransactions": sorted(t["tcode"] for t in transactions if t["tcode"] not in executed),
            "unknownTransactions": sorted(u["tcode"] for u in usage if u["tcode"] not in known),
            "remoteErrors": list(self.remote_errors),
        }


class BatchJobExtractor(BaseExtractor):
    extractor_id = "BATCH_JOBS"
    module = "PROCESS"
    category = "process"
    display_name = "Background Jobs"
    expected_tables = (
        ExpectedTable("TBTCO", "Job headers", critical=True),
        ExpectedTable("TBTCP", "Job steps"),
    )

    def extract_live(self) -> dict:
        steps: dict[tuple, list[dict]] = {}
        for r in self.read_table("TBTCP", fields=["JOBNAME", "JOBCOUNT", "STEPCOUNT", "PROGNAME", "AUTHCKNAM"]):
            steps.setdefault((r["JOBNAME"], r["JOBCOUNT"]), []).append(
                {"step": int(r["STEPCOUNT"] or 0), "program": r["PROGNAME"], "user": r["AUTHCKNAM"]},
            )
        jobs = []
        for r in self.read_table(
            "TBTCO",
            fields=["JOBNAME", "JOBCOUNT", "STATUS", "SDLUNAME", "STRTDATE", "PERIODIC", "PRDDAYS", "PRDHOURS"],
        ):
            jobs.append({
                "jobName": r["JOBNAME"],
                "jobCount": r["JOBCOUNT"],
                "status": r["STATUS"],
                "statusText": _JOB_STATUS.get(r["STATUS"], "unknown"),
                "user": r["SDLUNAME"],
                "startDate": r["STRTDATE"],
                "periodic": r["PERIODIC"] == "X",
                "periodDays": int(r["PRDDAYS"] or 0),
                "periodHours": int(r["PRDHOURS"] or 0),
                "custom": r["JOBNAME"][:1] in ("Z", "Y"),
                "steps": sorted(steps.get((r["JOBNAME"], r["JOBCOUNT"]), []), key=lambda s: s["step"]),
            })
        by_status: dict[str, int] = {}
        for job in jobs:
            by_status[job["statusText"]] = by_status.get(job["statusText"], 0) + 1
        return {
            "batchJobs": jobs,
            "summary": {
                "jobCount": len(jobs),
                "periodic": sum(1 for j in jobs if j["periodic"]),
                "custom": sum(1 for j in jobs if j["custom"]),
                "byStatus": by_status,
            },
        }
