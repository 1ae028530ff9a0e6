"""
Fixed vocabulary shared by the ingest, reconciliation and filter pipelines.

The catalog taxonomy is authored in Traditional Chinese; column headers and
enumerations below are matched verbatim.
"""

# CSV columns
COL_TABLE_NAME = "Table名稱"
COL_NAME_FALLBACK = "名稱"
COL_MARKET = "市場"
COL_ASPECT = "面向"
COL_CLASS = "類別"
COL_SAMPLE = "樣本"
COL_DESCRIPTION = "描述"

REQUIRED_COLUMNS = [COL_TABLE_NAME, COL_MARKET, COL_ASPECT, COL_CLASS, COL_SAMPLE]

EXPORT_HEADERS = [
    COL_TABLE_NAME,
    COL_MARKET,
    COL_ASPECT,
    COL_CLASS,
    COL_SAMPLE,
    COL_DESCRIPTION,
    "建立時間",
    "更新時間",
]

# Closed enumerations
VALID_MARKETS = ["台灣", "美國", "中國", "香港"]
VALID_ASPECTS = ["基本面", "技術面", "籌碼面", "消息面"]

DEFAULT_MARKET = "台灣"
DEFAULT_ASPECT = "基本面"

# Field-list workbook header row (ID, table, field name)
FIELD_LIST_HEADER = ("ID", "資料表", "欄位名稱")

# Fields containing any of these move to the end, in this order
PRIORITY_FIELDS_TO_END = [
    "代號",
    "名稱",
    "股票代號",
    "股票名稱",
    "日期",
    "年月",
    "年季",
    "年度",
    "RTIME",
]

# Type inference keywords, checked in this precedence
DATE_KEYWORDS = ["日期", "時間", "date", "time"]
NUMBER_KEYWORDS = ["價", "量", "率", "%", "金額", "數量", "比例", "指數"]
BOOLEAN_KEYWORDS = ["是否", "標記"]

MAX_TABLE_NAME_LENGTH = 100

INITIAL_DATA_VERSION = "1.0"
CSV_IMPORT_SOURCE = "csv_import"
