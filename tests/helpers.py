import json
import zipfile
from pathlib import Path


SCENARIO_A_TABLES = [
    {"name": "v_Collections", "columns": ["CollectionID", "Name"], "partitions": ["directQuery"]},
    {"name": "v_Packages", "columns": ["PackageID", "Name"], "partitions": ["directQuery", "import"]},
    {"name": "v_Advertisements", "columns": ["AdvertisementID"], "partitions": ["directQuery"]},
    {"name": "DateTable", "columns": ["Date"], "partitions": ["import"]},
]

DEFECT_TABLES = [
    {
        "name": "v_PackageStatusDistPointsSumm",
        "columns": [
            {
                "type": "rowNumber",
                "name": "RowNumber-2662979B-1795-4F74-8F37-6A1BA8059B61",
                "dataType": "int64",
                "isNullable": False,
            },
            {"name": "PackageID", "isNullable": False},
            {"name": "ContentPackageID", "isNullable": False},
            {"name": "Count", "dataType": "int64"},
        ],
        "partitions": ["directQuery"],
    },
    {
        "name": "v_ClientDownloadHistoryDP_BG",
        "columns": [{"name": "PackageID", "isNullable": False}, {"name": "BytesDownloaded", "isNullable": True}],
        "partitions": ["directQuery"],
    },
]

DEFECT_RELATIONSHIPS = [
    {
        "name": "rel-download-package",
        "fromTable": "v_ClientDownloadHistoryDP_BG",
        "fromColumn": "PackageID",
        "fromCardinality": "one",
        "toTable": "v_PackageStatusDistPointsSumm",
        "toColumn": "ContentPackageID",
    },
    {
        "name": "rel-other",
        "fromTable": "v_PackageStatusDistPointsSumm",
        "fromColumn": "PackageID",
        "fromCardinality": "one",
        "toTable": "v_Collections",
        "toColumn": "CollectionID",
    },
]


def read_zip_entries(path: Path) -> dict:
    with zipfile.ZipFile(path) as z:
        return {info.filename: z.read(info) for info in z.infolist()}


def schema_json(path: Path) -> dict:
    with zipfile.ZipFile(path) as z:
        return json.loads(z.read("DataModelSchema").decode("utf-16-le"))


