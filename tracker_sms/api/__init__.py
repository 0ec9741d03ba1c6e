from tracker_sms.api import catalog, legacy, reports, sms

routers = [catalog.router, sms.router, reports.router, legacy.router]
