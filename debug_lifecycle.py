import sys
import time

import requests

BASE_URL = "http://localhost:5000/api"


def find_order(orders, order_id):
    return next((o for o in orders if o["_id"] == order_id), None)


def follow_order(base_url=BASE_URL, timeout_s=20.0, poll_s=0.5):
    # 1. Place Order
    print("Placing order...")
    payload = {"customerName": "Debug Customer", "product": "Debug Widget", "quantity": 2, "price": 9.99}
    res = requests.post(f"{base_url}/orders", json=payload, timeout=5)
    print(f"Order Place: {res.status_code} - {res.text}")
    res.raise_for_status()
    order_id = res.json()["_id"]

    # 2. Watch it walk through the lifecycle
    seen = ["pending"]
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        res = requests.get(f"{base_url}/orders", timeout=5)
        res.raise_for_status()
        order = find_order(res.json(), order_id)
        if order is None:
            print(f"ERROR: order {order_id} disappeared from listing!")
            return seen
        if order["status"] != seen[-1]:
            print(f" -> {seen[-1]} => {order['status']} (updatedAt {order['updatedAt']})")
            seen.append(order["status"])
        if order["status"] == "delivered":
            print("Delivered.")
            return seen
        time.sleep(poll_s)

    print(f"TIMEOUT: order {order_id} stuck at '{seen[-1]}'")
    return seen


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else BASE_URL
    statuses = follow_order(url)
    sys.exit(0 if statuses[-1] == "delivered" else 1)
