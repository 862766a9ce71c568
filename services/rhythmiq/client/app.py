# ======================================================
# RhythmIQ: ECG viewer page
# Usage: streamlit run services/rhythmiq/client/app.py
# ======================================================

import streamlit as st

from rhythmiq.client.api_client import RhythmIQClient
from rhythmiq.client.chart import waveform_svg
from rhythmiq.client.session import ViewerSession

st.set_page_config(page_title="RhythmIQ", layout="wide")

if "viewer" not in st.session_state:
    st.session_state["viewer"] = ViewerSession(RhythmIQClient())
viewer: ViewerSession = st.session_state["viewer"]


def flush_notices():
    for notice in viewer.notices:
        st.toast(f"**{notice.title}**: {notice.description}", icon="⚠️" if notice.destructive else "✅")
    viewer.notices.clear()


# ======================================================
# UPLOAD
# ======================================================
st.title("Welcome to RhythmIQ Analysis")
st.caption("Upload your ECG strip and receive an AI ensemble reading in seconds.")

uploaded = st.file_uploader("Drop your ECG image here", type=None)
upload_key = (uploaded.name, uploaded.size) if uploaded is not None else None
if upload_key and upload_key != st.session_state.get("last_upload"):
    st.session_state["last_upload"] = upload_key
    viewer.load_image(uploaded.name, uploaded.getvalue(), uploaded.type)

if viewer.uploaded_image:
    st.image(viewer.uploaded_image, caption="Uploaded ECG", width=480)
    col_analyze, col_clear = st.columns(2)
    if col_analyze.button("Analyze ECG", disabled=viewer.is_analyzing, type="primary"):
        with st.spinner("Analyzing..."):
            viewer.analyze()
    if col_clear.button("Clear"):
        viewer.clear()

flush_notices()

# ======================================================
# RESULTS
# ======================================================
analysis = viewer.analysis
if analysis is not None:
    st.subheader("ECG Waveform Visualization")
    st.markdown(waveform_svg(analysis.waveform_data), unsafe_allow_html=True)

    metrics = st.columns(4)
    metrics[0].metric("Heart Rate", f"{analysis.heart_rate} BPM")
    metrics[1].metric("PR Interval", f"{analysis.pr_interval} ms")
    metrics[2].metric("QRS Duration", f"{analysis.qrs_duration} ms")
    metrics[3].metric("QT Interval", f"{analysis.qt_interval} ms")

    st.markdown(f"**ST Segment:** {analysis.st_segment}")

    diagnosis = analysis.diagnosis
    box = st.success if diagnosis.status == "normal" else st.warning
    header = f"AI Ensemble Diagnosis: {diagnosis.status.upper()}"
    if diagnosis.confidence is not None:
        header += f" ({diagnosis.confidence}%)"
    body = [f"**{header}**"]
    if diagnosis.condition:
        body.append(diagnosis.condition)
    body.append(diagnosis.details)
    if diagnosis.ensemble_agreement:
        body.append(f"🤖 {diagnosis.ensemble_agreement}")
    box("\n\n".join(body))

    # ======================================================
    # CHAT
    # ======================================================
    st.subheader("AI ECG Assistant")
    st.caption("Ask me anything about your ECG results")
    for message in viewer.messages:
        with st.chat_message(message.role):
            st.write(message.content)

    question = st.chat_input("Ask about your ECG results...", disabled=viewer.is_chatting)
    if question:
        viewer.ask(question)
        st.rerun()

flush_notices()
