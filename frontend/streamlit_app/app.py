import os

import requests
import streamlit as st

API = os.getenv("API_URL", "http://localhost:8000/api/v1")
PRIORITIES = ["P1", "P2", "P3", "P4"]
STATUSES = ["todo", "in-progress", "completed"]

st.set_page_config(page_title="NLTM", layout="centered")
st.title("NLTM: talk to your tasks")

def headers():
    return {"Authorization": f"Bearer {st.session_state['token']}"}

def show_error(r):
    try:
        st.error(r.json().get("detail", r.text))
    except ValueError:
        st.error(r.text)

# --- auth ---
if "token" not in st.session_state:
    login_tab, signup_tab = st.tabs(["Log in", "Sign up"])
    with login_tab, st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Log in"):
            r = requests.post(f"{API}/auth/login", json={"email": email, "password": password})
            if r.ok:
                st.session_state["token"] = r.json()["token"]
                st.session_state["user"] = r.json()["user"]
                st.rerun()
            show_error(r)
    with signup_tab, st.form("signup"):
        name = st.text_input("Name")
        email = st.text_input("Email ")
        password = st.text_input("Password ", type="password")
        if st.form_submit_button("Create account"):
            r = requests.post(f"{API}/auth/register", json={"name": name, "email": email, "password": password})
            if r.ok:
                st.session_state["token"] = r.json()["token"]
                st.session_state["user"] = r.json()["user"]
                st.rerun()
            show_error(r)
    st.stop()

with st.sidebar:
    st.write(f"Signed in as **{st.session_state['user']['name']}**")
    if st.button("Log out"):
        st.session_state.clear()
        st.rerun()

    st.subheader("Contacts")
    with st.form("contact"):
        short = st.text_input("Short name")
        full = st.text_input("Full name")
        if st.form_submit_button("Add contact"):
            r = requests.post(f"{API}/contacts", json=[{"shortName": short, "fullName": full}], headers=headers())
            if not r.ok:
                show_error(r)
    r = requests.get(f"{API}/contacts", headers=headers())
    if r.ok:
        for c in r.json():
            st.caption(f"{c['shortName']} → {c['fullName']}")

# --- parse ---
st.subheader("Add tasks from text")
with st.form("parse"):
    text = st.text_area("Describe your tasks in natural language:")
    upload = st.file_uploader("…or upload a .txt / .md file", type=["txt", "md"])
    if st.form_submit_button("Parse"):
        if upload is not None:
            r = requests.post(f"{API}/tasks/parse", files={"file": (upload.name, upload.getvalue(), "text/plain")},
                              headers=headers(), timeout=180)
        else:
            r = requests.post(f"{API}/tasks/parse", json={"text": text}, headers=headers(), timeout=180)
        if r.ok:
            st.session_state["candidates"] = r.json()["tasks"]
            st.info(r.json()["message"])
        else:
            show_error(r)

candidates = st.session_state.get("candidates", [])
if candidates:
    st.caption("Review before saving. Low confidence rows need a closer look.")
    edited = st.data_editor(candidates, num_rows="dynamic", use_container_width=True)
    if st.button("Save tasks"):
        r = requests.post(f"{API}/tasks", json={"tasks": edited}, headers=headers())
        if r.ok:
            st.success(r.json()["message"])
            st.session_state.pop("candidates")
        else:
            show_error(r)

# --- list ---
st.subheader("My tasks")
c1, c2, c3 = st.columns(3)
sort_by = c1.selectbox("Sort by", ["dueDate", "priority", "createdAt", "taskName"])
sort_order = c2.selectbox("Order", ["asc", "desc"])
priority = c3.selectbox("Priority", ["any"] + PRIORITIES)
params = {"sortBy": sort_by, "sortOrder": sort_order, "limit": 100}
if priority != "any":
    params["priority"] = priority
r = requests.get(f"{API}/tasks", params=params, headers=headers())
if r.ok:
    tasks = r.json()["tasks"]
    st.dataframe(tasks, use_container_width=True)
    if tasks:
        by_id = {t["id"]: t for t in tasks}
        task_id = st.selectbox("Task", list(by_id), format_func=lambda i: f"#{i} {by_id[i]['taskName']}")
        with st.form("update"):
            new_status = st.selectbox("Status", STATUSES, index=STATUSES.index(by_id[task_id]["status"]))
            new_priority = st.selectbox("Priority ", PRIORITIES, index=PRIORITIES.index(by_id[task_id]["priority"]))
            if st.form_submit_button("Update"):
                r = requests.put(f"{API}/tasks/{task_id}", json={"status": new_status, "priority": new_priority},
                                 headers=headers())
                if r.ok:
                    st.rerun()
                show_error(r)
        if st.button("Delete task"):
            r = requests.delete(f"{API}/tasks/{task_id}", headers=headers())
            if r.ok:
                st.rerun()
            show_error(r)
else:
    show_error(r)

st.subheader("Stats")
r = requests.get(f"{API}/tasks/stats", headers=headers())
if r.ok:
    st.write(r.json())
