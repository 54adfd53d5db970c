"""
Minimal Locust load test for the FPL proxy.

Run: locust -f locustfile.py --host=http://localhost:3000
Then open http://localhost:8089 and start a swarm.
"""

import random
from locust import HttpUser, task, between


class ProxyUser(HttpUser):
    wait_time = between(0.5, 1.5)

    @task(5)
    def bootstrap_static(self):
        self.client.get("/bootstrap-static", name="/bootstrap-static")

    @task(3)
    def fixtures(self):
        self.client.get("/fixtures", name="/fixtures")

    @task(3)
    def live_event(self):
        self.client.get(f"/live-event/{random.randint(1, 38)}", name="/live-event/[gw]")

    @task(2)
    def element_summary(self):
        self.client.get(
            f"/element-summary/{random.randint(1, 700)}",
            name="/element-summary/[id]",
        )

    @task(2)
    def picks(self):
        self.client.get(f"/picks/1/{random.randint(1, 38)}", name="/picks/[manager]/[gw]")

    @task(1)
    def manager(self):
        self.client.get("/manager/1", name="/manager/[id]")

    @task(1)
    def league(self):
        self.client.get("/league/314/1", name="/league/[id]/[page]")

    @task(1)
    def health(self):
        self.client.get("/health", name="/health")
