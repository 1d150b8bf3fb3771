"""
NetSuite record types and field ids used by the Wells Fargo dashboard.

Keeping them here avoids magic strings spread across queries and payloads.
"""

# REST record types
SALES_ORDER = "salesOrder"
CUSTOMER = "customer"
CUSTOMER_DEPOSIT = "customerDeposit"
CUSTOMER_PAYMENT = "customerPayment"
INVOICE = "invoice"
CREDIT_MEMO = "creditMemo"
DEPARTMENT = "department"
NOTE = "note"
WF_AUTH = "customrecord_bas_wf_auth"

# Wells Fargo Authorization custom record fields
WF_AUTH_SALES_ORDER = "custrecord_bas_wf_so_number"
WF_AUTH_NUMBER = "custrecord25"
WF_AUTH_AMOUNT = "custrecord26"
WF_AUTH_TO_BE_CHARGED = "custrecord_wf_deposit_to_be_charged"
WF_AUTH_CHARGED = "custrecord_wells_fargo_auth_dep_charged"
WF_AUTH_DEPOSIT_LINKS = "custrecord_customer_deposit_link"

# Other custom fields
DEPOSIT_WF_AUTH_LINK = "custbody_linked_wells_fargo_authorizat"
DEPARTMENT_FULFILLING_LOCATION = "custrecord_bas_fulfilling_location"

# Note titles
NOTE_TITLE = "Wells Fargo Note"
EMAIL_NOTE_TITLE = "Wells Fargo Email Sent"

# SuiteQL transaction type codes
TYPE_INVOICE = "CustInvc"
TYPE_CREDIT_MEMO = "CustCred"
TYPE_DEPOSIT = "CustDep"

# Form actions posted by the dashboard
ACTION_CREATE_DEPOSIT = "create_deposit"
ACTION_CREATE_PAYMENT = "create_payment"
ACTION_CREATE_NOTE = "create_note"
ACTION_EMAIL_SALES_REP = "email_sales_rep"

# NetSuite UI paths, used to build links back into the account
UI_PATHS = {
    SALES_ORDER: "/app/accounting/transactions/salesord.nl",
    CUSTOMER: "/app/common/entity/custjob.nl",
    CUSTOMER_DEPOSIT: "/app/accounting/transactions/custdep.nl",
    CUSTOMER_PAYMENT: "/app/accounting/transactions/custpymt.nl",
    INVOICE: "/app/accounting/transactions/custinvc.nl",
    CREDIT_MEMO: "/app/accounting/transactions/custcred.nl",
    NOTE: "/app/crm/common/note.nl",
}
CUSTOM_RECORD_PATH = "/app/common/custom/custrecordentry.nl"
