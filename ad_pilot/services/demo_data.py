# Fixed demonstration data
# Served by the data tools when no webhook backend is configured or it fails.
# Keep it deterministic: tests assert on exact values.

DEMO_VEHICLES = [
    {"id": "1", "year": 2019, "make": "Honda", "model": "CR-V", "price": 22995, "mileage": 45000, "daysOnLot": 12},
    {"id": "2", "year": 2020, "make": "Toyota", "model": "Camry", "price": 19995, "mileage": 38000, "daysOnLot": 8},
    {"id": "3", "year": 2018, "make": "Ford", "model": "F-150", "price": 28995, "mileage": 52000, "daysOnLot": 45},
    {"id": "4", "year": 2021, "make": "Chevrolet", "model": "Equinox", "price": 24995, "mileage": 28000, "daysOnLot": 5},
    {"id": "5", "year": 2017, "make": "Nissan", "model": "Altima", "price": 14995, "mileage": 68000, "daysOnLot": 62},
    {"id": "6", "year": 2019, "make": "Jeep", "model": "Cherokee", "price": 21995, "mileage": 41000, "daysOnLot": 23},
]

DEMO_BASE_RULES = {
    "Tone": ["Friendly and approachable", "Never pushy or salesy"],
    "Content": ["Always mention financing", "Highlight key features", "Include year/make/model"],
    "CTA": ["Include clear next step", "Provide contact info"],
    "Forbidden": ["Never guarantee APR", "No false claims"],
    "Style": ["Casual and conversational", "Short sentences", "Avoid jargon"],
}

DEMO_CUSTOM_RULES = [
    {"id": "c1", "presenter": "kelly", "category": "style", "rule": "Kelly should always act like a badass", "active": True},
    {"id": "c2", "presenter": "shad", "category": "facts", "rule": "Shad has over 35 years of automotive experience - mention this when introducing him", "active": True},
    {"id": "c3", "presenter": "all", "category": "facts", "rule": "The dealership has been family-owned for over 20 years", "active": True},
    {"id": "c4", "presenter": "gary", "category": "facts", "rule": "Gary is the owner and founded the dealership", "active": False},
]

DEMO_SCHEDULED_POSTS = [
    {"id": "p1", "date": "2026-10-19", "time": "09:00", "title": "Monday Deal: 2019 Honda CR-V", "platform": "facebook", "status": "published"},
    {"id": "p2", "date": "2026-10-20", "time": "12:00", "title": "Smart Buyer Tip: Reading a Vehicle History Report", "platform": "youtube", "status": "scheduled"},
    {"id": "p3", "date": "2026-10-21", "time": "17:30", "title": "Truck Tuesday: 2018 Ford F-150", "platform": "tiktok", "status": "scheduled"},
    {"id": "p4", "date": "2026-10-22", "time": "11:00", "title": "Financing Made Simple", "platform": "instagram", "status": "draft"},
    {"id": "p5", "date": "2026-10-23", "time": "15:00", "title": "Weekend Preview: 2021 Chevrolet Equinox", "platform": "facebook", "status": "scheduled"},
]
