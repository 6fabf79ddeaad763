"""Shared fixtures: a small governance catalog held in memory.

    host INFOSVR
      database COMPDIR (DB2, db2inst1)
        database_schema DB2INST1
          database_table CONTACTEMAIL
            database_column EMAIL      (selected + discovered: Email Address)
            database_column CONTACTID  (discovered: Identifier)
      data_connection COMPDIR_CONN -> imports COMPDIR

    category Root
      category Subject Area
        category Customer Data   <- term Email
      category Other Leaf        <- term Revenue

    policy Data Protection
      policy Encrypt PII

Assets modified on 2024-03-01: COMPDIR and EMAIL. Everything else is older.
"""

import copy

import pytest

from connectors.governance_catalog import build_registry
from connectors.memory_client import InMemoryCatalogClient
from core.config import BridgeConfig
from core.mapping.repository import CatalogRepository


COLLECTION = "test-collection"
OLD = "2024-01-10T08:00:00+00:00"
CHANGED = "2024-03-01T10:00:00+00:00"


def ref(rid, native_type, name=None):
    return {"_id": rid, "_type": native_type, "_name": name}


HOST = ref("h1", "host", "INFOSVR")
DATABASE = ref("db1", "database", "COMPDIR")
SCHEMA = ref("sch1", "database_schema", "DB2INST1")
TABLE = ref("tbl1", "database_table", "CONTACTEMAIL")
EMAIL_COLUMN = ref("col1", "database_column", "EMAIL")
ID_COLUMN = ref("col2", "database_column", "CONTACTID")
CONNECTION = ref("conn1", "data_connection", "COMPDIR_CONN")
EMAIL_CLASS = ref("dc1", "data_class", "Email Address")
ID_CLASS = ref("dc2", "data_class", "Identifier")
MAIN_OBJECT = ref("mo1", "main_object")
ROOT = ref("cat_root", "category", "Root")
SUBJECT_AREA = ref("cat_sa", "category", "Subject Area")
LEAF = ref("cat_leaf", "category", "Customer Data")
OTHER_LEAF = ref("cat_other", "category", "Other Leaf")
EMAIL_TERM = ref("term1", "term", "Email")
REVENUE_TERM = ref("term2", "term", "Revenue")
POLICY_ROOT = ref("pol_root", "information_governance_policy", "Data Protection")
POLICY = ref("pol1", "information_governance_policy", "Encrypt PII")


def asset(reference, **properties):
    properties.setdefault("created_on", OLD)
    properties.setdefault("modified_on", OLD)
    return {**reference, "properties": properties}


CATALOG = [
    asset(HOST, ip_address="10.0.0.5", short_description="Information server", data_connections=[CONNECTION]),
    asset(
        DATABASE,
        host=HOST,
        dbms="DB2",
        dbms_version="11.1",
        dbms_server_instance="db2inst1",
        imported_from="Metadata Asset Manager",
        short_description="Compliance directory",
        database_schemas=[SCHEMA],
        modified_on=CHANGED,
    ),
    asset(SCHEMA, database=DATABASE, short_description="Default schema", database_tables=[TABLE]),
    asset(TABLE, database_schema=SCHEMA, database_columns=[EMAIL_COLUMN, ID_COLUMN]),
    asset(
        EMAIL_COLUMN,
        database_table=TABLE,
        data_type="VARCHAR",
        position=1,
        allows_null_values=False,
        length=64,
        selected_classification=EMAIL_CLASS,
        modified_on="2024-03-01T11:30:00+00:00",
    ),
    asset(ID_COLUMN, database_table=TABLE, data_type="INTEGER", position=2, allows_null_values=True),
    asset(
        CONNECTION,
        host=HOST,
        imports_database=DATABASE,
        connection_string="jdbc:db2://infosvr:50000/COMPDIR",
        username="db2inst1",
    ),
    asset(EMAIL_CLASS, class_code="EA", short_description="E-mail address", classifications_selected=[EMAIL_COLUMN]),
    asset(ID_CLASS, class_code="ID", short_description="Numeric identifier"),
    asset(
        ref("cls1", "classification"),
        classifies_asset=EMAIL_COLUMN,
        data_class=EMAIL_CLASS,
        confidencePercent=95,
        threshold=0.8,
        value_frequency=42,
    ),
    asset(
        ref("cls2", "classification"),
        classifies_asset=ID_COLUMN,
        data_class=ID_CLASS,
        confidencePercent=100,
        threshold=0.9,
        value_frequency=7,
    ),
    asset(
        ref("cls3", "classification"),
        classifies_asset=MAIN_OBJECT,
        data_class=EMAIL_CLASS,
        confidencePercent=80,
        threshold=0.5,
    ),
    asset(MAIN_OBJECT),
    asset(ROOT, short_description="Top of the glossary", subcategories=[SUBJECT_AREA, OTHER_LEAF]),
    asset(SUBJECT_AREA, parent_category=ROOT, subcategories=[LEAF]),
    asset(LEAF, parent_category=SUBJECT_AREA, short_description="Customer facts", terms=[EMAIL_TERM]),
    asset(OTHER_LEAF, parent_category=ROOT, terms=[REVENUE_TERM]),
    asset(
        EMAIL_TERM,
        parent_category=LEAF,
        short_description="An electronic mail address",
        long_description="Address used to deliver electronic mail to a customer",
        abbreviation="EM",
    ),
    asset(REVENUE_TERM, parent_category=OTHER_LEAF, short_description="Income from sales"),
    asset(POLICY_ROOT, short_description="Protect personal data"),
    asset(
        POLICY,
        parent_policy=POLICY_ROOT,
        short_description="Encrypt personal data at rest",
        long_description="All personally identifiable information is encrypted at rest.",
    ),
]


def catalog_assets():
    """A fresh copy of the sample catalog payloads."""
    return copy.deepcopy(CATALOG)


@pytest.fixture
def config():
    return BridgeConfig(metadata_collection_id=COLLECTION, page_size=2)


@pytest.fixture
def client(config):
    return InMemoryCatalogClient(config, assets=catalog_assets())


@pytest.fixture
def registry(config):
    return build_registry(config)


@pytest.fixture
def repository(client, registry):
    return CatalogRepository(client, registry)


def guid(native_type, rid, prefix=None):
    """Expected entity GUID in the test collection."""
    return f"{COLLECTION}@{prefix or ''}{native_type}:{rid}"
