"""
Streamlit web interface for the claim validation service.

Module Input:
    - Claim details via Streamlit form widgets
    - Configuration from settings module

Module Output:
    - Claim decision with cited clauses and retrieval source
    - Audit history table per claim
    - Clause corpus browser

Pages:
    - Validate Claim: Submit a claim and view the decision
    - Audit History: Look up the audit trail of a claim
    - Policy Clauses: Browse the clause corpus by policy type
"""

import streamlit as st

from CRB.core.exceptions import InputError, StorageError
from CRB.core.logging_config import get_logger, setup_root_logger
from CRB.core.models import ClaimRequest, PolicyType
from CRB.services.factory import build_services
from CRB.ui.formatting import audit_records_to_frame, clauses_to_frame, decision_badge

# Setup logging
setup_root_logger()
logger = get_logger(__name__)

# Page configuration
st.set_page_config(
    page_title="Claims RAG Bot",
    page_icon="🛡️",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def initialize_services():
    """
    Initialize and cache the service container.

    Side Effects:
        - Loads the clause corpus
        - Creates Bedrock, Qdrant and audit clients
        - Starts the audit dispatcher thread
    """
    try:
        services = build_services()
        logger.info("Core services initialized successfully")
        return services
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        st.error(f"❌ Failed to initialize services: {str(e)}")
        st.stop()


def render_decision(result, corpus):
    """Show a validation result."""
    decision = result.decision
    st.subheader(decision_badge(result))

    col1, col2, col3 = st.columns(3)
    col1.metric("Confidence", f"{decision.confidence_score:.0%}")
    col2.metric("Retrieval", result.retrieval_source.value)
    col3.metric("Clauses", len(result.matched_clause_ids))

    st.markdown(f"**Explanation:** {decision.explanation or '-'}")
    st.caption(f"Claim ID: `{result.claim_id}`")

    if decision.required_documents:
        st.markdown("**Required documents:**")
        for doc in decision.required_documents:
            st.markdown(f"- {doc}")

    for contradiction in result.contradictions:
        show = st.error if contradiction.is_critical else st.warning
        show(contradiction.summary())
    for warning in result.warnings:
        st.info(warning)

    if result.matched_clause_ids:
        with st.expander("Retrieved clauses", expanded=True):
            for clause_id in result.matched_clause_ids:
                clause = corpus.get(clause_id)
                cited = " 📌" if clause_id in decision.clause_references else ""
                if clause:
                    st.markdown(f"**[{clause.id}]** _{clause.coverage_type}_{cited}  \n{clause.text}")


def main():
    """Main Streamlit application entry point."""
    services = initialize_services()

    st.title("🛡️ Claims RAG Bot")
    st.markdown("Validate insurance claims against the policy clauses that apply to them")

    with st.sidebar:
        st.header("⚙️ Configuration")
        st.info(f"**Collection:** `{services.vector_index.collection}`")
        st.info(f"**Audit backend:** `{services.settings.get_audit_backend()}`")

        if services.vector_index.ping():
            st.success("✅ Vector backend reachable")
        else:
            st.warning("⚠️ Vector backend unreachable, using keyword fallback")

        st.divider()
        st.header("📊 Audit Queue")
        stats = services.audit_dispatcher.stats()
        col1, col2 = st.columns(2)
        col1.metric("Written", stats["written"])
        col2.metric("Pending", stats["pending"])
        col1.metric("Failed", stats["failed"])
        col2.metric("Dropped", stats["dropped"])

    tab1, tab2, tab3 = st.tabs(["📝 Validate Claim", "🗂️ Audit History", "📚 Policy Clauses"])

    # Tab 1: Claim validation
    with tab1:
        with st.form("claim_form"):
            col1, col2 = st.columns(2)
            policy_number = col1.text_input("Policy Number", value="POL-2024-001")
            policy_type = col2.selectbox("Policy Type", [p.value for p in PolicyType])
            claim_amount = st.number_input("Claim Amount ($)", min_value=0.0, value=2500.0, step=100.0)
            claim_description = st.text_area(
                "Claim Description",
                placeholder="e.g. Rear bumper collision damage in a parking lot"
            )
            submitted = st.form_submit_button("Validate Claim", type="primary")

        if submitted:
            request = ClaimRequest(
                policy_number=policy_number,
                policy_type=policy_type,
                claim_amount=claim_amount,
                claim_description=claim_description
            )
            with st.spinner("Retrieving clauses and evaluating claim..."):
                try:
                    result = services.validation_service.validate(request)
                except InputError as e:
                    st.error(f"❌ {e.message}")
                else:
                    st.session_state["last_claim_id"] = result.claim_id
                    render_decision(result, services.corpus)

    # Tab 2: Audit history
    with tab2:
        claim_id = st.text_input("Claim ID", value=st.session_state.get("last_claim_id", ""))
        if st.button("Load History") and claim_id:
            services.audit_dispatcher.flush(timeout=2.0)
            try:
                records = services.validation_service.audit_history(claim_id)
            except (InputError, StorageError) as e:
                st.error(f"❌ {e.message}")
            else:
                if records:
                    st.dataframe(audit_records_to_frame(records), use_container_width=True)
                else:
                    st.info("No audit records for this claim")

    # Tab 3: Clause corpus
    with tab3:
        selected = st.selectbox("Policy Type", ["All"] + [p.value for p in PolicyType], key="clause_filter")
        clauses = services.corpus if selected == "All" else services.corpus.by_category(PolicyType(selected))
        st.dataframe(clauses_to_frame(clauses), use_container_width=True)


if __name__ == "__main__":
    main()
